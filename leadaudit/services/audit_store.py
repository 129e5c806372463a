"""
Audit store — hands a finished WebsiteAudit to the database.

Every run inserts a new row; an existing audit is never rewritten.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadaudit.models import AuditRecord
from leadaudit.schemas import WebsiteAudit

logger = logging.getLogger("leadaudit.store")


async def save_audit(session: AsyncSession, audit: WebsiteAudit, status: str = "audited") -> AuditRecord:
    record = AuditRecord(
        url=audit.url,
        business_name=audit.business_name or None,
        contact_email=audit.contact_email,
        state=audit.state.value,
        lead_quality=audit.lead_quality.value,
        estimated_value=audit.estimated_value,
        payload=audit.model_dump(mode="json"),
        status=status,
        audited_at=audit.created_at,
    )
    session.add(record)
    await session.commit()
    await session.refresh(record)
    logger.info("Stored audit %s for %s (%s)", record.id, record.url, record.state)
    return record


async def load_audit(session: AsyncSession, record_id: str) -> WebsiteAudit | None:
    record = await session.get(AuditRecord, record_id)
    if record is None:
        return None
    return WebsiteAudit.model_validate(record.payload)


async def audits_for_url(session: AsyncSession, url: str) -> list[AuditRecord]:
    """Every stored run for one URL, newest first."""
    result = await session.execute(
        select(AuditRecord).where(AuditRecord.url == url).order_by(AuditRecord.audited_at.desc())
    )
    return list(result.scalars().all())
