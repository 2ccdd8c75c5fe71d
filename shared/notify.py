"""
Lifecycle reporting hooks.

Services call the reporter at fixed points (enrichment started/degraded,
idea strategy chosen, task published, contact failed, batch finished).
The default implementation writes to the log; tests swap in a recorder.
"""

import logging
from typing import Optional

from .models import BatchReport, ContactState, Provenance, PublishedTask

logger = logging.getLogger(__name__)


class PipelineReporter:
    """No-op base. Override the hooks you care about."""

    def enrichment_started(self, contact_id: str) -> None:
        pass

    def enrichment_degraded(self, contact_id: str, part: str, error: Exception) -> None:
        pass

    def strategy_chosen(self, contact_id: str, provenance: Provenance, reason: Optional[str] = None) -> None:
        pass

    def task_published(self, contact_id: str, task: PublishedTask) -> None:
        pass

    def task_failed(self, contact_id: str, idea_title: str, error: Exception) -> None:
        pass

    def contact_failed(self, contact_id: str, stage: ContactState, error: Exception) -> None:
        pass

    def batch_completed(self, report: BatchReport) -> None:
        pass


class LoggingReporter(PipelineReporter):

    def enrichment_started(self, contact_id):
        logger.info(f"🔍 Enriching contact {contact_id}")

    def enrichment_degraded(self, contact_id, part, error):
        logger.warning(f"   ⚠️ {part} unavailable for contact {contact_id}: {error}")

    def strategy_chosen(self, contact_id, provenance, reason=None):
        if provenance is Provenance.AI:
            logger.info(f"🤖 Ideas for {contact_id} generated with AI")
        elif provenance is Provenance.RULES_AI_FAILED:
            logger.warning(f"⚠️ AI generation failed for {contact_id}, falling back to rule-based ideas: {reason}")
        else:
            logger.info(f"📐 AI not configured, rule-based ideas for {contact_id}")

    def task_published(self, contact_id, task):
        logger.info(f"✅ {task.source.value} task {task.id} created for contact {contact_id}")
        logger.info(f"   🔗 {task.url}")

    def task_failed(self, contact_id, idea_title, error):
        logger.error(f"   ❌ Tracker task '{idea_title}' failed for contact {contact_id}: {error}")

    def contact_failed(self, contact_id, stage, error):
        logger.error(f"❌ Contact {contact_id} failed while {stage.value}: {type(error).__name__}: {error}")

    def batch_completed(self, report):
        logger.info(f"✅ Analysis completed. Processed {report.total_processed} contacts")
        logger.info(f"   Successful: {report.successful}")
        logger.info(f"   Failed: {report.failed}")
        if report.skipped:
            logger.warning(f"   Skipped (deadline reached): {report.skipped}")
        logger.info(f"   Duration: {report.duration_seconds:.1f}s")


_reporter: Optional[PipelineReporter] = None


def get_reporter() -> PipelineReporter:
    """Shared default reporter instance."""
    global _reporter
    if _reporter is None:
        _reporter = LoggingReporter()
    return _reporter
