"""
Task publication service.

One HubSpot task per analysis (mandatory, created first), then one ClickUp
task per idea when the tracker is configured. Append-only.
"""

import logging
import time
from datetime import datetime
from typing import Callable, Dict, Optional

from enrich.metrics import utc_now
from shared.clickup import ClickUpClient
from shared.hubspot import HubSpotClient
from shared.models import (
    AnalysisResult,
    Idea,
    Priority,
    Publication,
    PublishedTask,
    TaskSource,
)
from shared.notify import PipelineReporter, get_reporter
from shared_config import ProcessingConfig, RateLimitConfig

logger = logging.getLogger(__name__)

PRIORITY_MARKERS = {
    Priority.HIGH: '🔴',
    Priority.MEDIUM: '🟡',
    Priority.LOW: '🟢',
}

# ClickUp scale: 1 urgent, 2 high, 3 normal, 4 low. Urgent is never assigned.
CLICKUP_URGENT = 1
CLICKUP_PRIORITY: Dict[Priority, int] = {
    Priority.HIGH: 2,
    Priority.MEDIUM: 3,
    Priority.LOW: 4,
}

RECENT_COMMUNICATIONS_IN_BODY = 3


def format_task_body(result: AnalysisResult, segment_id: Optional[str] = None,
                     now: Optional[datetime] = None) -> str:
    """Plain-text HubSpot task body: snapshot, numbered ideas, recent communications."""
    now = now or utc_now()
    last_activity = result.last_activity.strftime('%Y-%m-%d') if result.last_activity else 'No activity'

    body = "📊 CONTACT SUMMARY\n\n"
    body += f"👤 Name: {result.contact_name}\n"
    body += f"📧 Email: {result.contact_email or 'No email'}\n"
    body += f"🏢 Company: {result.company_name}\n"
    body += f"📍 Stage: {result.lifecycle_stage}\n"
    body += f"💼 Deals: {len(result.deals)} ({result.metrics.active_deals} active)\n"
    body += f"📅 Last activity: {last_activity}\n"
    body += f"⏰ Days without contact: {result.metrics.days_since_last_contact}\n\n"

    body += "💡 COMMUNICATION IDEAS\n\n"
    for index, idea in enumerate(result.ideas, 1):
        body += f"{index}. {idea.title} {PRIORITY_MARKERS[idea.priority]}\n"
        body += f"   📱 Type: {idea.type}\n"
        body += f"   💭 Reason: {idea.reason}\n"
        body += f"   ✅ Action: {idea.action}\n"
        body += f"   ⚡ Priority: {idea.priority.value}\n"
        if idea.suggested_timing:
            body += f"   🕒 Timing: {idea.suggested_timing}\n"
        body += "\n"

    if result.communications:
        body += "\n📞 LATEST COMMUNICATIONS:\n"
        for comm in result.communications[:RECENT_COMMUNICATIONS_IN_BODY]:
            body += f"- {comm.type.label}: {comm.subject} ({comm.days_ago(now)} days ago)\n"

    source = 'AI' if result.generated_with_ai else 'rule-based fallback'
    body += "\n---\n"
    body += f"🤖 Generated automatically ({source}) on {now.strftime('%Y-%m-%d %H:%M')} UTC\n"
    if segment_id:
        body += f"📋 Segment: {segment_id}"
    return body


def format_tracker_description(idea: Idea, result: AnalysisResult) -> str:
    description = f"**Contact:** {result.contact_name}"
    if result.contact_email:
        description += f" ({result.contact_email})"
    description += "\n"
    description += f"**Company:** {result.company_name}\n"
    description += f"**Communication type:** {idea.type}\n\n"
    description += f"**Reason:** {idea.reason}\n\n"
    description += f"**Suggested action:**\n{idea.action}\n\n"
    if idea.suggested_timing:
        description += f"**Suggested timing:** {idea.suggested_timing}\n"
    return description


class TaskPublisher:
    """Publishes an AnalysisResult to HubSpot and, optionally, ClickUp."""

    def __init__(self, hubspot: HubSpotClient, clickup: Optional[ClickUpClient] = None,
                 settings: Optional[ProcessingConfig] = None,
                 rate_limits: Optional[RateLimitConfig] = None,
                 reporter: Optional[PipelineReporter] = None,
                 clock: Callable[[], datetime] = utc_now,
                 sleep: Callable[[float], None] = time.sleep):
        self.hubspot = hubspot
        self.clickup = clickup
        self.settings = settings or ProcessingConfig()
        self.rate_limits = rate_limits or RateLimitConfig()
        self.reporter = reporter or get_reporter()
        self.clock = clock
        self.sleep = sleep

    def publish(self, result: AnalysisResult, segment_id: Optional[str] = None) -> Publication:
        crm_task = self.create_crm_task(result, segment_id)
        publication = Publication(crm_task=crm_task)
        self.create_tracker_tasks(result, publication)
        return publication

    def create_crm_task(self, result: AnalysisResult, segment_id: Optional[str] = None) -> PublishedTask:
        """Failures propagate: the CRM task is mandatory."""
        now = self.clock()
        subject = f"{self.settings.task_subject_prefix} - {result.contact_name}"
        properties = {
            'hs_task_subject': subject,
            'hs_task_body': format_task_body(result, segment_id, now),
            'hs_task_status': 'NOT_STARTED',
            'hs_task_priority': 'HIGH' if result.high_priority else 'MEDIUM',
            'hs_timestamp': now.isoformat(),
            'hs_task_type': 'TODO',
        }

        created = self.hubspot.create_task(properties)
        task_id = str(created.get('id'))
        self.hubspot.associate_task_to_contact(task_id, result.contact_id)

        task = PublishedTask(
            id=task_id,
            source=TaskSource.HUBSPOT,
            url=HubSpotClient.task_url(task_id),
            status='NOT_STARTED',
            name=subject,
        )
        self.reporter.task_published(result.contact_id, task)
        return task

    def create_tracker_tasks(self, result: AnalysisResult, publication: Publication) -> None:
        """Best effort, one task per idea. Failures are counted, never raised."""
        if self.clickup is None or not self.clickup.is_configured():
            logger.info("⚠️ ClickUp not configured, skipping tracker tasks")
            return
        if not result.ideas:
            logger.warning("⚠️ No ideas to create ClickUp tasks for")
            return

        total = len(result.ideas)
        for index, idea in enumerate(result.ideas, 1):
            logger.info(f"   📝 Creating ClickUp task {index}/{total}...")
            try:
                created = self.clickup.create_task(
                    name=f"{idea.title} - {result.contact_name}",
                    description=format_tracker_description(idea, result),
                    priority=CLICKUP_PRIORITY[idea.priority],
                    tags=['sales', 'hubspot', idea.type.lower()],
                )
            except Exception as e:
                publication.tracker_failures += 1
                self.reporter.task_failed(result.contact_id, idea.title, e)
            else:
                task = PublishedTask(
                    id=created['id'],
                    source=TaskSource.CLICKUP,
                    url=created['url'],
                    status=created['status'],
                    name=created['name'],
                )
                publication.tracker_tasks.append(task)
                self.reporter.task_published(result.contact_id, task)

            if index < total and self.rate_limits.tracker_task_delay > 0:
                self.sleep(self.rate_limits.tracker_task_delay)
