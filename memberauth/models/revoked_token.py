"""Session tokens revoked by logout before their natural expiry."""
from sqlalchemy import Column, String, DateTime

from memberauth.database import Base


class RevokedToken(Base):
    __tablename__ = "revoked_tokens"

    token = Column(String(1024), primary_key=True)
    # Mirrors the token's own expiry; once passed the row can be purged
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
