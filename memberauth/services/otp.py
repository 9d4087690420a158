"""One-time passcodes: generation and one-way hashing."""
import secrets

import bcrypt

OTP_DIGITS = 6


def _otp_bytes(otp: str, max_len: int = 72) -> bytes:
    return otp.encode("utf-8")[:max_len]


def generate_otp() -> str:
    return f"{secrets.randbelow(10 ** OTP_DIGITS):0{OTP_DIGITS}d}"


def hash_otp(otp: str, rounds: int = 10) -> str:
    return bcrypt.hashpw(_otp_bytes(otp), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def check_otp(submitted: str, otp_hash: str | None) -> bool:
    if not otp_hash or not isinstance(submitted, str):
        return False
    try:
        return bcrypt.checkpw(_otp_bytes(submitted), otp_hash.encode("utf-8"))
    except ValueError:
        return False
