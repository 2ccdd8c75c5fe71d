"""
Batch orchestration.

Segment -> (enrich -> metrics -> ideas -> publish) per contact, strictly
sequential, paced, with each contact's failure isolated in its record.
"""

import logging
import time
from datetime import datetime
from typing import Callable, Optional, Tuple

from enrich.metrics import compute_metrics, utc_now
from enrich.service import ContactEnricher
from ideas.service import IdeaGenerator
from ideas.signals import SignalSource
from publish.service import TaskPublisher
from segments.service import SegmentResolver
from shared.clickup import ClickUpClient
from shared.errors import RateLimitOrTransientError
from shared.guide import GuideFetcher
from shared.hubspot import HubSpotClient
from shared.llm import IdeaBackend
from shared.models import (
    AnalysisResult,
    BatchReport,
    Contact,
    ContactRunRecord,
    ContactState,
    EngagementMetrics,
    GenerationOutcome,
    Priority,
    Publication,
)
from shared.notify import PipelineReporter, get_reporter
from shared.rate_limit import Pacer, build_pacer
from shared_config import ProcessingConfig, SystemConfig

logger = logging.getLogger(__name__)


def is_high_priority(outcome: GenerationOutcome, metrics: EngagementMetrics, stale_days: int = 14) -> bool:
    return (any(idea.priority is Priority.HIGH for idea in outcome.ideas)
            or metrics.days_since_last_contact > stale_days)


class BatchOrchestrator:
    """Runs the per-contact pipeline for one contact or a whole segment."""

    def __init__(self, resolver: SegmentResolver, enricher: ContactEnricher,
                 generator: IdeaGenerator, publisher: TaskPublisher, pacer: Pacer,
                 settings: Optional[ProcessingConfig] = None,
                 default_segment_id: Optional[str] = None,
                 reporter: Optional[PipelineReporter] = None,
                 clock: Callable[[], datetime] = utc_now,
                 monotonic: Callable[[], float] = time.monotonic):
        self.resolver = resolver
        self.enricher = enricher
        self.generator = generator
        self.publisher = publisher
        self.pacer = pacer
        self.settings = settings or ProcessingConfig()
        self.default_segment_id = default_segment_id
        self.reporter = reporter or get_reporter()
        self.clock = clock
        self.monotonic = monotonic

    def analyze_contact(self, contact_id: str) -> AnalysisResult:
        """Enrich and generate ideas without publishing anything."""
        context = self.enricher.enrich(contact_id)
        return self._analyze(context)

    def run_contact(self, contact_id: str, segment_id: Optional[str] = None) -> Tuple[AnalysisResult, Publication]:
        """Single-contact run. Errors propagate to the caller."""
        logger.info(f"📊 Analyzing contact: {contact_id}")
        result = self.analyze_contact(contact_id)
        publication = self.publisher.publish(result, segment_id or self.default_segment_id)
        return result, publication

    def run_segment(self, segment_id: Optional[str] = None) -> BatchReport:
        """Process every contact of the segment. Only segment resolution errors propagate."""
        segment_id = segment_id or self.default_segment_id
        logger.info("🔄 Starting analysis of all contacts...")
        started = self.monotonic()

        contacts = self.resolver.resolve(segment_id)
        report = BatchReport(segment_id=segment_id)

        deadline = self.settings.run_deadline_seconds
        total = len(contacts)
        for index, contact in enumerate(contacts):
            if deadline and self.monotonic() - started >= deadline:
                report.skipped = total - index
                logger.warning(f"⏰ Run deadline of {deadline}s reached, {report.skipped} contacts not started")
                break

            self.pacer.wait()
            logger.info(f"👤 Contact {index + 1}/{total}: {contact.id}")
            record = self.process_contact(contact, segment_id)
            report.results.append(record)

        report.duration_seconds = self.monotonic() - started
        self.reporter.batch_completed(report)
        return report

    def process_contact(self, contact: Contact, segment_id: Optional[str] = None) -> ContactRunRecord:
        """Never raises: any failure becomes a FAILED record carrying its stage."""
        record = ContactRunRecord(contact_id=contact.id, email=contact.email)
        try:
            record.state = ContactState.ENRICHING
            context = self.enricher.enrich(contact.id)

            record.state = ContactState.GENERATING
            result = self._analyze(context)
            record.provenance = result.provenance
            record.owner_id = result.owner_id
            record.email = record.email or result.contact_email

            record.state = ContactState.PUBLISHING
            publication = self.publisher.publish(result, segment_id)
            record.crm_task_id = publication.crm_task.id
            record.tracker_task_ids = [task.id for task in publication.tracker_tasks]

            record.state = ContactState.DONE
        except Exception as e:
            record.failed_stage = record.state
            record.state = ContactState.FAILED
            record.error = str(e) or type(e).__name__
            self.reporter.contact_failed(contact.id, record.failed_stage, e)
            self.pacer.record_failure(is_rate_limit=isinstance(e, RateLimitOrTransientError))
        else:
            self.pacer.record_success()
        return record

    def _analyze(self, context) -> AnalysisResult:
        now = self.clock()
        metrics = compute_metrics(context, now)
        outcome = self.generator.generate(context, metrics)
        ideas = outcome.ideas[:self.settings.max_ideas]

        contact = context.contact
        company = context.company
        return AnalysisResult(
            contact_id=contact.id,
            contact_name=contact.full_name,
            contact_email=contact.email,
            contact_phone=contact.phone,
            company_name=context.company_name,
            company_domain=company.domain if company else None,
            company_industry=company.industry if company else None,
            lifecycle_stage=contact.lifecycle_stage,
            owner_id=contact.owner_id,
            last_activity=contact.last_modified_at,
            deals=context.deals,
            communications=context.communications,
            total_communications=context.total_communications,
            metrics=metrics,
            ideas=ideas,
            provenance=outcome.provenance,
            high_priority=is_high_priority(outcome, metrics, self.settings.stale_contact_days),
            generated_at=now,
        )


def build_orchestrator(config: SystemConfig, reporter: Optional[PipelineReporter] = None,
                       signals: Optional[SignalSource] = None) -> BatchOrchestrator:
    """Wire the production clients from one SystemConfig."""
    reporter = reporter or get_reporter()
    hubspot = HubSpotClient(config.hubspot, dry_run=config.dry_run)
    clickup = ClickUpClient(config.clickup, dry_run=config.dry_run)

    return BatchOrchestrator(
        resolver=SegmentResolver(hubspot, config.processing),
        enricher=ContactEnricher(hubspot, config.processing, reporter),
        generator=IdeaGenerator(
            backend=IdeaBackend(config.openai),
            guide=GuideFetcher(config.guide),
            signals=signals,
            settings=config.processing,
            reporter=reporter,
        ),
        publisher=TaskPublisher(hubspot, clickup, config.processing, config.rate_limits, reporter),
        pacer=build_pacer(config.rate_limits),
        settings=config.processing,
        default_segment_id=config.hubspot.segment_id,
        reporter=reporter,
    )

