"""
Lead Audit — persisted audit row.

``payload`` is the finished WebsiteAudit as JSON and is written once. ``status``
belongs to the outreach layer (audited → contacted → ...) and is the only
column it updates.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from leadaudit.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditRecord(Base):
    __tablename__ = "audit_records"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    url: Mapped[str] = mapped_column(String(2048), nullable=False, index=True)
    business_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    state: Mapped[str] = mapped_column(String(20), nullable=False)
    lead_quality: Mapped[str] = mapped_column(String(10), nullable=False)
    estimated_value: Mapped[int] = mapped_column(Integer, default=0)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(String(30), default="audited")
    audited_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "business_name": self.business_name,
            "contact_email": self.contact_email,
            "state": self.state,
            "lead_quality": self.lead_quality,
            "estimated_value": self.estimated_value,
            "status": self.status,
            "audited_at": self.audited_at.isoformat() if self.audited_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
