"""
All SQLAlchemy models. Schema is the source of truth for new DBs.
Base.metadata.create_all() creates every table.
"""
from memberauth.models.member import Member, LoginChallenge
from memberauth.models.pending_verification import PendingVerification
from memberauth.models.revoked_token import RevokedToken

__all__ = [
    "Member",
    "LoginChallenge",
    "PendingVerification",
    "RevokedToken",
]
