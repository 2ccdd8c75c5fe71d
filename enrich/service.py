"""
Contact enrichment service.

Builds an EnrichedContext for one contact: properties, associated company,
associated deals with stage/pipeline labels, and the recent communication
history. Only the contact fetch is fatal; every associated part degrades
to empty/None and is reported.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from shared.errors import PipelineError
from shared.hubspot import HubSpotClient
from shared.models import (
    UNKNOWN_DAYS,
    Communication,
    Company,
    Contact,
    Deal,
    EnrichedContext,
    StageCatalog,
    to_float,
    parse_timestamp,
)
from shared.notify import PipelineReporter, get_reporter
from shared.pagination_utils import OffsetPaginator
from shared_config import ProcessingConfig

from .communications import real_communications
from .metrics import calendar_days_between, utc_now

logger = logging.getLogger(__name__)

CONTACT_PROPERTIES = [
    'email', 'firstname', 'lastname', 'phone', 'company',
    'lifecyclestage', 'hs_lead_status', 'createdate', 'lastmodifieddate',
    'hubspot_owner_id', 'notes_last_contacted', 'num_notes',
]

COMPANY_PROPERTIES = [
    'name', 'domain', 'industry', 'numberofemployees', 'annualrevenue',
    'website', 'city', 'state', 'country',
]

DEAL_PROPERTIES = [
    'dealname', 'dealstage', 'amount', 'closedate', 'pipeline',
    'hs_lastmodifieddate', 'dealtype', 'hubspot_owner_id', 'deal_currency_code',
]


class ContactEnricher:
    """Gathers everything the idea generator needs about one contact."""

    def __init__(self, hubspot: HubSpotClient, settings: Optional[ProcessingConfig] = None,
                 reporter: Optional[PipelineReporter] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.hubspot = hubspot
        self.settings = settings or ProcessingConfig()
        self.reporter = reporter or get_reporter()
        self.clock = clock

    def enrich(self, contact_id: str) -> EnrichedContext:
        self.reporter.enrichment_started(contact_id)

        # The only fatal fetch: errors propagate to the caller
        contact = Contact.from_api(self.hubspot.get_contact(contact_id, CONTACT_PROPERTIES))

        company = self.fetch_company(contact_id)
        deals = self.fetch_deals(contact_id)
        communications, total = self.fetch_communications(contact_id)

        now = self.clock()
        last_communication_at = communications[0].timestamp if communications else None
        if last_communication_at is not None:
            days = max(0, (now - last_communication_at).days)
        elif contact.last_modified_at is not None:
            days = calendar_days_between(contact.last_modified_at, now)
        else:
            days = UNKNOWN_DAYS

        context = EnrichedContext(
            contact=contact,
            company=company,
            deals=deals,
            communications=communications,
            total_communications=total,
            last_communication_at=last_communication_at,
            days_since_last_contact=days,
        )

        logger.info(f"📊 Contact summary: {contact.full_name} ({contact.email or 'N/A'})")
        logger.info(f"   Company: {context.company_name}")
        logger.info(f"   Deals: {len(deals)}")
        logger.info(f"   Communications: {len(communications)} of {total}")
        logger.info(f"   Days since last contact: {days}")
        return context

    def fetch_company(self, contact_id: str) -> Optional[Company]:
        try:
            company_ids = self.hubspot.get_associated_ids('contacts', contact_id, 'companies')
            if not company_ids:
                logger.info("   ℹ️ No associated company")
                return None
            company = Company.from_api(self.hubspot.get_company(company_ids[0], COMPANY_PROPERTIES))
        except PipelineError as e:
            self.reporter.enrichment_degraded(contact_id, 'company', e)
            return None
        logger.info(f"   🏢 Company: {company.name or 'No name'} ({company.domain or 'N/A'})")
        return company

    def fetch_deals(self, contact_id: str) -> List[Deal]:
        try:
            deal_ids = self.hubspot.get_associated_ids('contacts', contact_id, 'deals')
        except PipelineError as e:
            self.reporter.enrichment_degraded(contact_id, 'deals', e)
            return []
        if not deal_ids:
            return []

        logger.info(f"   💼 Found {len(deal_ids)} associated deals")
        raw_deals = []
        for deal_id in deal_ids:
            try:
                raw_deals.append(self.hubspot.get_deal(deal_id, DEAL_PROPERTIES))
            except PipelineError as e:
                self.reporter.enrichment_degraded(contact_id, f"deal {deal_id}", e)

        if not raw_deals:
            return []

        catalog = self.fetch_stage_catalog(contact_id)
        deals = [self._build_deal(raw, catalog) for raw in raw_deals]
        logger.info(f"   ✅ Loaded {len(deals)} deals with details")
        return deals

    def fetch_stage_catalog(self, contact_id: str) -> StageCatalog:
        """Fetched per enrichment; an empty catalog falls back to raw ids."""
        try:
            return StageCatalog.from_api(self.hubspot.get_deal_pipelines())
        except PipelineError as e:
            self.reporter.enrichment_degraded(contact_id, 'stage catalog', e)
            return StageCatalog()

    @staticmethod
    def _build_deal(raw: dict, catalog: StageCatalog) -> Deal:
        props = raw.get('properties') or {}
        owner_id = props.get('hubspot_owner_id')
        return Deal(
            id=str(raw.get('id')),
            name=props.get('dealname') or 'No name',
            stage=catalog.stage_label(props.get('dealstage')),
            pipeline=catalog.pipeline_label(props.get('pipeline')),
            amount=to_float(props.get('amount')),
            currency=props.get('deal_currency_code') or 'USD',
            close_date=parse_timestamp(props.get('closedate')),
            owner_id=str(owner_id) if owner_id else None,
            last_modified=parse_timestamp(props.get('hs_lastmodifieddate')),
            deal_type=props.get('dealtype') or None,
        )

    def fetch_communications(self, contact_id: str) -> Tuple[List[Communication], int]:
        """(most recent window, total real communications). Failure degrades to empty history."""
        logger.info(f"   📞 Fetching communications for contact {contact_id}...")
        paginator = OffsetPaginator(lambda offset: self.hubspot.get_engagements_page(
            contact_id, limit=self.settings.engagement_page_limit, offset=offset))
        try:
            raw_engagements, stats = paginator.fetch_all(max_pages=self.settings.max_engagement_pages)
        except PipelineError as e:
            self.reporter.enrichment_degraded(contact_id, 'communications', e)
            return [], 0
        if stats.truncated:
            logger.warning(f"   ⚠️ Stopped after {stats.pages} engagement pages")

        communications = real_communications(raw_engagements, self.settings.self_task_markers)
        window = max(0, self.settings.communications_window)
        return communications[:window], len(communications)
