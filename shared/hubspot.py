"""
HubSpot API client functions.
Contains all CRM communication logic - no analysis logic.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from shared_config import HubSpotConfig
from .http import ApiClient

logger = logging.getLogger(__name__)

CONTACT_OBJECT_TYPE = '0-1'
DEAL_OBJECT_TYPE = '0-3'
TASK_TO_CONTACT_ASSOCIATION = 204


def _association_ids(response: Dict[str, Any]) -> List[str]:
    ids = []
    for item in response.get('results') or []:
        value = item.get('id') or item.get('toObjectId')
        if value is not None:
            ids.append(str(value))
    return ids


class HubSpotClient:
    """Typed wrappers around the HubSpot endpoints the pipeline depends on."""

    def __init__(self, config: HubSpotConfig, dry_run: bool = False, api: Optional[ApiClient] = None):
        self.config = config
        self.dry_run = dry_run
        self.api = api or ApiClient(
            config.base_url,
            config.get_headers(),
            timeout=config.timeout_seconds,
            max_retries=config.max_retries,
            name='HubSpot',
        )

    # --- Segments -------------------------------------------------------

    def get_segment(self, segment_id: str) -> Dict[str, Any]:
        """Segment metadata; `objectTypeId` tells contacts (0-1) from deals (0-3)."""
        data = self.api.get(f"/crm/v3/lists/{segment_id}")
        return data.get('list') or data

    def get_segment_memberships(self, segment_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """One page of segment memberships."""
        return self.api.get(f"/crm/v3/lists/{segment_id}/memberships", params=params)

    def get_legacy_list_contacts(self, segment_id: str, properties: Sequence[str],
                                 count: int = 100) -> List[Dict[str, Any]]:
        """v1 list API. Only used as an alternate path when v3 finds nothing."""
        data = self.api.get(
            f"/contacts/v1/lists/{segment_id}/contacts/all",
            params={'count': count, 'property': list(properties)},
        )
        contacts = []
        for item in data.get('contacts') or []:
            props = {k: (v or {}).get('value') if isinstance(v, dict) else v
                     for k, v in (item.get('properties') or {}).items()}
            contacts.append({'id': str(item.get('vid')), 'properties': props})
        return contacts

    # --- Objects --------------------------------------------------------

    def get_contact(self, contact_id: str, properties: Sequence[str]) -> Dict[str, Any]:
        return self.api.get(
            f"/crm/v3/objects/contacts/{contact_id}",
            params={'properties': ','.join(properties)},
        )

    def batch_read_contacts(self, contact_ids: Sequence[str], properties: Sequence[str]) -> List[Dict[str, Any]]:
        data = self.api.post('/crm/v3/objects/contacts/batch/read', {
            'inputs': [{'id': str(contact_id)} for contact_id in contact_ids],
            'properties': list(properties),
        })
        return data.get('results') or []

    def get_company(self, company_id: str, properties: Sequence[str]) -> Dict[str, Any]:
        return self.api.get(
            f"/crm/v3/objects/companies/{company_id}",
            params={'properties': ','.join(properties)},
        )

    def get_deal(self, deal_id: str, properties: Sequence[str]) -> Dict[str, Any]:
        return self.api.get(
            f"/crm/v3/objects/deals/{deal_id}",
            params={'properties': ','.join(properties)},
        )

    def get_deal_pipelines(self) -> Dict[str, Any]:
        return self.api.get('/crm/v3/pipelines/deals')

    # --- Associations ---------------------------------------------------

    def get_associated_ids(self, from_object: str, object_id: str, to_object: str) -> List[str]:
        """e.g. ('contacts', id, 'companies') or ('deals', id, 'contacts')."""
        data = self.api.get(f"/crm/v3/objects/{from_object}/{object_id}/associations/{to_object}")
        return _association_ids(data)

    # --- Engagements ----------------------------------------------------

    def get_engagements_page(self, contact_id: str, limit: int = 100,
                             offset: Optional[int] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {'limit': limit}
        if offset is not None:
            params['offset'] = offset
        return self.api.get(
            f"/engagements/v1/engagements/associated/contact/{contact_id}/paged",
            params=params,
        )

    # --- Tasks ----------------------------------------------------------

    def create_task(self, properties: Dict[str, Any]) -> Dict[str, Any]:
        if self.dry_run:
            logger.info(f"🧪 DRY RUN: Would create HubSpot task '{properties.get('hs_task_subject')}'")
            return {'id': f"dry-run-{uuid.uuid4().hex[:8]}", 'properties': properties}
        return self.api.post('/crm/v3/objects/tasks', {'properties': properties})

    def associate_task_to_contact(self, task_id: str, contact_id: str) -> None:
        if self.dry_run:
            logger.info(f"🧪 DRY RUN: Would associate task {task_id} to contact {contact_id}")
            return
        self.api.put(
            f"/crm/v3/objects/tasks/{task_id}/associations/contacts/{contact_id}/{TASK_TO_CONTACT_ASSOCIATION}"
        )

    @staticmethod
    def task_url(task_id: str) -> str:
        return f"https://app.hubspot.com/contacts/tasks/{task_id}"
