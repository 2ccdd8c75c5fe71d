"""
Engagement normalization and the self-task filter.

HubSpot's v1 engagements API returns {engagement, metadata, associations}
records whose useful fields depend on the engagement type.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from shared.models import Communication, CommunicationType, parse_timestamp

logger = logging.getLogger(__name__)

MAX_SUBJECT_CHARS = 200
MAX_BODY_CHARS = 500


def _first(metadata: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = metadata.get(key)
        if value:
            return str(value)
    return ''


def _subject_and_body(comm_type: CommunicationType, metadata: Dict[str, Any]):
    if comm_type is CommunicationType.EMAIL:
        return _first(metadata, 'subject') or 'No subject', _first(metadata, 'text', 'html')
    if comm_type is CommunicationType.CALL:
        return _first(metadata, 'title', 'toNumber', 'fromNumber') or 'Call', _first(metadata, 'body', 'notes')
    if comm_type is CommunicationType.NOTE:
        return _first(metadata, 'subject') or 'Note', _first(metadata, 'body')
    if comm_type is CommunicationType.MEETING:
        return _first(metadata, 'title', 'subject') or 'Meeting', _first(metadata, 'body', 'notes')

    body = _first(metadata, 'body')
    fallback = 'Task' if comm_type is CommunicationType.TASK else 'Communication'
    return _first(metadata, 'subject') or body[:50] or fallback, body


def parse_engagement(raw: Dict[str, Any]) -> Optional[Communication]:
    """Normalize one engagement record. Returns None when it has no usable timestamp."""
    engagement = raw.get('engagement') or {}
    metadata = raw.get('metadata') or {}

    timestamp = parse_timestamp(engagement.get('timestamp') or engagement.get('createdAt'))
    if timestamp is None:
        logger.debug(f"Skipping engagement {engagement.get('id')} without timestamp")
        return None

    comm_type = CommunicationType.parse(engagement.get('type'))
    subject, body = _subject_and_body(comm_type, metadata)

    direction = 'outbound'
    if comm_type in (CommunicationType.EMAIL, CommunicationType.CALL):
        if metadata.get('direction') == 'INCOMING' or engagement.get('type') == 'INCOMING_EMAIL':
            direction = 'inbound'

    owner_id = engagement.get('ownerId')
    return Communication(
        id=str(engagement.get('id')),
        type=comm_type,
        timestamp=timestamp,
        subject=subject[:MAX_SUBJECT_CHARS],
        body=body[:MAX_BODY_CHARS],
        direction=direction,
        owner_id=str(owner_id) if owner_id is not None else None,
    )


def is_self_task(communication: Communication, markers: Sequence[str]) -> bool:
    """Tasks this pipeline created itself; they must never count as contact."""
    if communication.type is not CommunicationType.TASK:
        return False
    subject = communication.subject or ''
    return any(marker in subject for marker in markers)


def real_communications(raw_engagements: Iterable[Dict[str, Any]],
                        markers: Sequence[str]) -> List[Communication]:
    """Parse, drop self-tasks and sort newest first."""
    parsed = [c for c in (parse_engagement(raw) for raw in raw_engagements) if c is not None]
    real = [c for c in parsed if not is_self_task(c, markers)]

    excluded = len(parsed) - len(real)
    if excluded:
        logger.info(f"   ✅ Found {len(real)} real communications (excluding {excluded} system tasks)")
    else:
        logger.info(f"   ✅ Found {len(real)} communications")

    real.sort(key=lambda c: c.timestamp, reverse=True)
    return real
