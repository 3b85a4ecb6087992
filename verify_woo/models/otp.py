from sqlalchemy import Column, DateTime, Index, Integer, String

from verify_woo.database import Base


class OtpEntry(Base):
    __tablename__ = "otp_codes"

    id = Column(Integer, primary_key=True)
    key = Column(String(64), nullable=False, unique=True)
    code = Column(Integer, nullable=False)
    attempts = Column(Integer, nullable=False, default=0)
    issued_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_otp_expires_at", "expires_at"),)
