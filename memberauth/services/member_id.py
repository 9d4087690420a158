"""Human-readable member ids: name initial, two-digit birth year, two-digit sequence (e.g. A2501)."""
from datetime import date

from memberauth.exceptions import CapacityExceeded
from memberauth.services.stores import MemberStore

MAX_SEQUENCE = 99


def member_id_prefix(full_name: str, dob: date) -> str:
    return f"{full_name.strip()[0].upper()}{dob.year % 100:02d}"


def generate_member_id(members: MemberStore, full_name: str, dob: date) -> str:
    """Next free id for the name/birth-year prefix.

    Reads the current highest id without locking; callers insert under the
    primary-key constraint and retry on collision.
    """
    prefix = member_id_prefix(full_name, dob)
    highest = members.find_highest_id_with_prefix(prefix)
    sequence = int(highest[len(prefix):]) + 1 if highest else 1
    if sequence > MAX_SEQUENCE:
        raise CapacityExceeded(prefix)
    return f"{prefix}{sequence:02d}"
