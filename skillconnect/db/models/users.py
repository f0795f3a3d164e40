from typing import Any, Dict

from sqlalchemy import Column, String, DateTime, Boolean, Text, Index
from sqlalchemy.dialects.postgresql import JSONB
from .base import Base, now_utc, new_object_id


class User(Base):
    __tablename__ = 'users'
    id = Column(String(24), primary_key=True, default=new_object_id)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    # Always stored trimmed and lower-cased
    email = Column(String, nullable=False, unique=True, index=True)
    phone = Column(String, nullable=True)
    password_hash = Column(Text, nullable=True)
    roles = Column(JSONB, nullable=False, default=lambda: ["mentee"])
    current_role = Column(String, nullable=False, default='mentee')
    # 'active'|'inactive'|'suspended'|'pending'
    account_status = Column(String, nullable=False, default='pending')
    suspension_reason = Column(Text, nullable=True)
    email_verified = Column(Boolean, nullable=False, default=False)
    registration_source = Column(String, nullable=False, default='web')
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        Index('ix_users_account_status', 'account_status'),
        Index('ix_users_created_at', 'created_at'),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def has_role(self, role: str) -> bool:
        return role in (self.roles or [])

    def to_document(self) -> Dict[str, Any]:
        """Safe nested view of the user (no credentials).

        Export field lists and store filters address this view by dotted path,
        e.g. ``account.status``.
        """
        return {
            "_id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "roles": list(self.roles or []),
            "currentRole": self.current_role,
            "account": {
                "status": self.account_status,
                "suspensionReason": self.suspension_reason,
            },
            "verification": {"email": {"isVerified": bool(self.email_verified)}},
            "metadata": {"registrationSource": self.registration_source},
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
