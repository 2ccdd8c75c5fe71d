"""
Engagement metrics. Pure functions, no I/O.
"""

import math
import re
from datetime import datetime, timezone
from typing import Optional

from shared.models import UNKNOWN_DAYS, Deal, EngagementMetrics, EnrichedContext

CLOSED_STAGE_PATTERN = re.compile(r'closed|won|lost', re.IGNORECASE)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def calendar_days_between(start: datetime, end: datetime) -> int:
    """Ceiling of the absolute delta in days."""
    seconds = abs((end - start).total_seconds())
    return math.ceil(seconds / 86400)


def days_since(moment: Optional[datetime], now: datetime) -> int:
    if moment is None:
        return UNKNOWN_DAYS
    return calendar_days_between(moment, now)


def is_active_deal(deal: Deal) -> bool:
    stage = (deal.stage or '').strip()
    return bool(stage) and not CLOSED_STAGE_PATTERN.search(stage)


def deal_days_since_modified(deal: Deal, now: datetime) -> Optional[int]:
    if deal.last_modified is None:
        return None
    return calendar_days_between(deal.last_modified, now)


def compute_metrics(context: EnrichedContext, now: Optional[datetime] = None) -> EngagementMetrics:
    now = now or utc_now()
    contact = context.contact
    return EngagementMetrics(
        days_since_last_contact=context.days_since_last_contact,
        active_deals=sum(1 for deal in context.deals if is_active_deal(deal)),
        total_deal_amount=sum(deal.amount for deal in context.deals),
        days_since_creation=days_since(contact.created_at, now),
        days_since_last_activity=days_since(contact.last_modified_at, now),
    )
