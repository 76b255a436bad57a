from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String

from app.platform.db.base import BaseModel


class OtpRecord(BaseModel):
    __tablename__ = "otp_records"

    email = Column(String(255), nullable=False, index=True)
    code_hash = Column(String(60), nullable=False)
    purpose = Column(String(20), nullable=False, default="verification")
    issued_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    consumed = Column(Boolean, nullable=False, default=False)
    attempts = Column(Integer, nullable=False, default=0)

    __table_args__ = (Index("ix_otp_records_email_live", "email", "consumed", "expires_at"),)

    def __repr__(self):
        return (
            f"<OtpRecord(id={self.id}, email={self.email}, consumed={self.consumed}, "
            f"attempts={self.attempts})>"
        )
