"""
Segment resolution service.

Turns a HubSpot segment (dynamic or static list, of contacts or of deals)
into the ordered list of contacts to analyze.
"""

import logging
from typing import Dict, List, Optional

from shared.errors import (
    AccessDeniedError,
    AuthenticationError,
    NotFoundError,
    PipelineError,
)
from shared.hubspot import CONTACT_OBJECT_TYPE, DEAL_OBJECT_TYPE, HubSpotClient
from shared.models import Contact
from shared.pagination_utils import CursorPaginator
from shared_config import ProcessingConfig

logger = logging.getLogger(__name__)

SEGMENT_CONTACT_PROPERTIES = [
    'email', 'firstname', 'lastname', 'phone', 'company', 'lifecyclestage', 'hs_lead_status',
]

FATAL_ERRORS = (AuthenticationError, AccessDeniedError)


def _membership_record_id(membership: Dict) -> Optional[str]:
    """Memberships carry recordId; older payloads used contactId/vid/id."""
    for key in ('recordId', 'contactId', 'vid', 'id'):
        value = membership.get(key)
        if value:
            return str(value)
    return None


def _unique(ids: List[str]) -> List[str]:
    seen = set()
    return [i for i in ids if not (i in seen or seen.add(i))]


def _chunks(items: List[str], size: int) -> List[List[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


class SegmentResolver:
    """Resolves a segment id into Contact records."""

    def __init__(self, hubspot: HubSpotClient, settings: Optional[ProcessingConfig] = None):
        self.hubspot = hubspot
        self.settings = settings or ProcessingConfig()

    def resolve(self, segment_id: str) -> List[Contact]:
        """Return the segment's contacts in membership order. Empty is a valid answer."""
        logger.info(f"📋 Fetching contacts from segment: {segment_id}")
        try:
            object_type = self._segment_object_type(segment_id)
            record_ids = self._member_ids(segment_id)

            if object_type == DEAL_OBJECT_TYPE:
                logger.info(f"   Deal segment: resolving contacts of {len(record_ids)} deals")
                contact_ids = self._contacts_of_deals(record_ids)
            else:
                contact_ids = record_ids

            contacts = self._read_contacts(contact_ids) if contact_ids else []
        except AuthenticationError as e:
            raise AuthenticationError(
                f"HubSpot authentication failed. Check HUBSPOT_API_KEY ({e})", e.status_code) from e
        except AccessDeniedError as e:
            raise AccessDeniedError(
                f"HubSpot denied access. The token needs lists/segments and contacts scopes ({e})",
                e.status_code) from e
        except NotFoundError as e:
            raise NotFoundError(
                f"Segment {segment_id} does not exist or is not accessible ({e})", e.status_code) from e

        if contacts:
            logger.info(f"✅ Found {len(contacts)} contacts in segment {segment_id}")
            return contacts

        logger.info(f"⚠️ No contacts found in segment {segment_id} via memberships, trying legacy list API...")
        contacts = self._legacy_contacts(segment_id)
        if not contacts:
            logger.info(f"ℹ️ No contacts found in segment {segment_id}")
        return contacts

    def resolve_ids(self, segment_id: str) -> List[str]:
        return [contact.id for contact in self.resolve(segment_id)]

    def _segment_object_type(self, segment_id: str) -> str:
        try:
            segment = self.hubspot.get_segment(segment_id)
        except FATAL_ERRORS:
            raise
        except PipelineError as e:
            logger.warning(f"   ⚠️ Could not read segment metadata, assuming a contact segment: {e}")
            return CONTACT_OBJECT_TYPE
        object_type = str(segment.get('objectTypeId') or CONTACT_OBJECT_TYPE)
        logger.info(
            f"   Segment \"{segment.get('name', 'Unknown')}\" "
            f"(size={segment.get('size', 'N/A')}, objectType={object_type})"
        )
        return object_type

    def _member_ids(self, segment_id: str) -> List[str]:
        paginator = CursorPaginator(lambda params: self.hubspot.get_segment_memberships(segment_id, params))
        memberships, _ = paginator.fetch_all(
            batch_size=self.settings.page_size,
            max_safety_pages=self.settings.max_membership_pages,
        )
        ids = [_membership_record_id(m) for m in memberships]
        return _unique([i for i in ids if i])

    def _contacts_of_deals(self, deal_ids: List[str]) -> List[str]:
        contact_ids: List[str] = []
        for deal_id in deal_ids:
            try:
                ids = self.hubspot.get_associated_ids('deals', deal_id, 'contacts')
            except FATAL_ERRORS:
                raise
            except PipelineError as e:
                logger.warning(f"   ⚠️ Could not read contacts of deal {deal_id}: {e}")
                continue
            logger.debug(f"   Deal {deal_id} has {len(ids)} associated contacts")
            contact_ids.extend(ids)
        unique_ids = _unique(contact_ids)
        logger.info(f"   Unique contacts across deals: {len(unique_ids)}")
        return unique_ids

    def _read_contacts(self, contact_ids: List[str]) -> List[Contact]:
        by_id: Dict[str, Contact] = {}
        for chunk in _chunks(contact_ids, self.settings.batch_read_size):
            try:
                for raw in self.hubspot.batch_read_contacts(chunk, SEGMENT_CONTACT_PROPERTIES):
                    contact = Contact.from_api(raw)
                    by_id[contact.id] = contact
            except FATAL_ERRORS:
                raise
            except PipelineError as e:
                logger.error(f"   ❌ Batch read failed, fetching {len(chunk)} contacts individually: {e}")
                for contact_id in chunk:
                    try:
                        raw = self.hubspot.get_contact(contact_id, SEGMENT_CONTACT_PROPERTIES)
                    except FATAL_ERRORS:
                        raise
                    except PipelineError as individual_error:
                        logger.warning(f"   ⚠️ Could not fetch contact {contact_id}: {individual_error}")
                        continue
                    by_id[str(raw.get('id', contact_id))] = Contact.from_api(raw)
        # Batch reads do not preserve input order
        return [by_id[i] for i in contact_ids if i in by_id]

    def _legacy_contacts(self, segment_id: str) -> List[Contact]:
        try:
            raw_contacts = self.hubspot.get_legacy_list_contacts(segment_id, SEGMENT_CONTACT_PROPERTIES)
        except PipelineError as e:
            logger.info(f"   ⚠️ Legacy list API also failed: {e}")
            return []
        contacts = [Contact.from_api(raw) for raw in raw_contacts if raw.get('id') not in (None, 'None')]
        if contacts:
            logger.info(f"   ✅ Legacy list API found {len(contacts)} contacts")
        return contacts
