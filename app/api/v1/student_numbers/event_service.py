"""
Offer letter lifecycle events (generated / downloaded / printed). Append-only.
log_offer_letter_event is the best-effort variant used as a side channel: a failure is
logged and rolled back, never raised. Both take plain ids and never read ORM rows.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import OfferLetterAction
from app.core.models import OfferLetterEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientInfo:
    """Network metadata of the caller, stored on events."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


async def record_offer_letter_event(
    db: AsyncSession,
    offer_letter_id: UUID,
    application_id: UUID,
    action: OfferLetterAction,
    *,
    acted_by: Optional[UUID] = None,
    client: Optional[ClientInfo] = None,
) -> OfferLetterEvent:
    """Append one event and commit."""
    client = client or ClientInfo()
    event = OfferLetterEvent(
        offer_letter_id=offer_letter_id,
        application_id=application_id,
        action=action.value,
        acted_by=acted_by,
        ip_address=client.ip_address,
        user_agent=client.user_agent[:1000] if client.user_agent else None,
        created_at=datetime.utcnow(),
    )
    db.add(event)
    await db.commit()
    return event


async def log_offer_letter_event(
    db: AsyncSession,
    offer_letter_id: UUID,
    application_id: UUID,
    action: OfferLetterAction,
    *,
    acted_by: Optional[UUID] = None,
    client: Optional[ClientInfo] = None,
) -> bool:
    """Best-effort append. Returns False when the event could not be stored."""
    try:
        await record_offer_letter_event(
            db, offer_letter_id, application_id, action, acted_by=acted_by, client=client
        )
    except SQLAlchemyError:
        await db.rollback()
        logger.warning(
            "Offer letter event %s for letter %s could not be logged",
            action.value,
            offer_letter_id,
            exc_info=True,
        )
        return False
    return True


async def list_events_for_application(db: AsyncSession, application_id: UUID) -> List[OfferLetterEvent]:
    result = await db.execute(
        select(OfferLetterEvent)
        .where(OfferLetterEvent.application_id == application_id)
        .order_by(OfferLetterEvent.created_at.asc())
    )
    return list(result.scalars().all())
