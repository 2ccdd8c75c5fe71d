"""
Idea generation service.

Tries the AI backend when it is configured and falls back to the rule
engine on any backend or parse problem. Generation never fails the
pipeline.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from enrich.metrics import utc_now
from shared.errors import ValidationError
from shared.guide import GuideFetcher
from shared.llm import IdeaBackend
from shared.models import (
    EngagementMetrics,
    EnrichedContext,
    GenerationOutcome,
    Idea,
    Provenance,
)
from shared.notify import PipelineReporter, get_reporter
from shared_config import ProcessingConfig

from .prompt import build_system_message, build_user_prompt
from .rules import generate_rule_based_ideas
from .signals import SignalSource, UpcomingEvent

logger = logging.getLogger(__name__)


def parse_ideas(payload: dict, max_ideas: int) -> List[Idea]:
    """Validate the backend payload. Invalid entries are dropped; none valid is an error."""
    raw_ideas = payload.get('ideas')
    if not isinstance(raw_ideas, list):
        raise ValidationError("Backend response has no 'ideas' array")

    ideas = []
    for index, raw in enumerate(raw_ideas):
        try:
            ideas.append(Idea.from_dict(raw))
        except ValidationError as e:
            logger.warning(f"   ⚠️ Dropping invalid idea #{index + 1}: {e}")
    if not ideas:
        raise ValidationError('Backend response contained no valid ideas')
    return ideas[:max_ideas]


class IdeaGenerator:
    """Produces 1..max_ideas ideas for one enriched contact."""

    def __init__(self, backend: Optional[IdeaBackend] = None, guide: Optional[GuideFetcher] = None,
                 signals: Optional[SignalSource] = None, settings: Optional[ProcessingConfig] = None,
                 reporter: Optional[PipelineReporter] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.backend = backend
        self.guide = guide
        self.signals = signals or SignalSource()
        self.settings = settings or ProcessingConfig()
        self.reporter = reporter or get_reporter()
        self.clock = clock

    def generate(self, context: EnrichedContext, metrics: EngagementMetrics) -> GenerationOutcome:
        contact_id = context.contact.id
        domain = context.company.domain if context.company else None
        news = self._signal('company news', self.signals.company_news, domain) if domain else []
        events = self._signal('upcoming events', self.signals.upcoming_events)

        if self.backend is None or not self.backend.is_configured():
            outcome = GenerationOutcome(self._rule_ideas(metrics, context, events), Provenance.RULES_AI_DISABLED)
            self.reporter.strategy_chosen(contact_id, outcome.provenance)
            return outcome

        try:
            logger.info(f"🤖 Generating ideas with AI for: {context.contact.full_name}")
            ideas = self._ai_ideas(context, metrics, news, events)
        except Exception as e:
            # Any backend failure (SDK, network, parse) falls back to rules
            reason = f"{type(e).__name__}: {e}"
            outcome = GenerationOutcome(
                self._rule_ideas(metrics, context, events), Provenance.RULES_AI_FAILED, error=reason)
            self.reporter.strategy_chosen(contact_id, outcome.provenance, reason)
            return outcome

        outcome = GenerationOutcome(ideas, Provenance.AI)
        self.reporter.strategy_chosen(contact_id, outcome.provenance)
        return outcome

    def _signal(self, name: str, fetch: Callable, *args) -> list:
        try:
            return list(fetch(*args) or [])
        except Exception as e:
            logger.warning(f"   ⚠️ Could not load {name}, continuing without: {e}")
            return []

    def _ai_ideas(self, context, metrics, news, events) -> List[Idea]:
        guide = self.guide.fetch() if self.guide else None
        system_message = build_system_message(guide)
        prompt = build_user_prompt(context, metrics, self.clock(), news=news, events=events)
        payload = self.backend.complete_json(system_message, prompt)
        return parse_ideas(payload, self.settings.max_ideas)

    def _rule_ideas(self, metrics: EngagementMetrics, context: EnrichedContext,
                    events: List[UpcomingEvent]) -> List[Idea]:
        return generate_rule_based_ideas(
            metrics.days_since_last_contact,
            context.deals,
            events,
            stale_days=self.settings.stale_contact_days,
            follow_up_days=self.settings.follow_up_days,
            count=self.settings.max_ideas,
        )
