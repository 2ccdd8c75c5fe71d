"""
Prompt construction for the AI idea strategy.

Compact but complete: contact, company, recent communications, the
primary deal, optional signals, then the response schema.
"""

import math
from datetime import datetime
from typing import List, Optional, Sequence

from enrich.metrics import deal_days_since_modified
from shared.models import EngagementMetrics, EnrichedContext

from .signals import CompanyNews, UpcomingEvent

SYSTEM_PERSONA = (
    "You are a B2B sales expert who generates specific, actionable communication ideas "
    "for sales reps. Your answers must be concise, practical and grounded in the contact's context."
)

RESPONSE_SCHEMA = (
    'Generate 3 communication ideas in JSON format:\n'
    '{"ideas": [{"title": "...", "type": "...", "reason": "...", "action": "...", '
    '"priority": "High|Medium|Low", "suggestedTiming": "..."}]}'
)

MAX_PROMPT_CHARS = 6000
PROMPT_COMMUNICATIONS = 5
PROMPT_SUBJECT_CHARS = 60


def build_system_message(guide: Optional[str] = None) -> str:
    message = SYSTEM_PERSONA
    if guide:
        message += f"\n\n=== SALES GUIDE ===\n{guide}\n"
    return message


def _contact_section(context: EnrichedContext, metrics: EngagementMetrics) -> str:
    contact = context.contact
    line = f"{contact.full_name} ({contact.email or 'No email'})"
    if contact.phone:
        line += f" - {contact.phone}"
    return (
        f"CONTACT:\n{line}\n"
        f"Lifecycle stage: {contact.lifecycle_stage}\n"
        f"Days without contact: {metrics.days_since_last_contact}\n"
    )


def _company_section(context: EnrichedContext) -> str:
    company = context.company
    line = f"COMPANY: {context.company_name}"
    if company:
        if company.industry:
            line += f" ({company.industry})"
        if company.size:
            line += f" - {company.size} employees"
        if company.revenue:
            line += f" - revenue {company.revenue}"
    return line + "\n"


def _communications_section(context: EnrichedContext, now: datetime) -> str:
    if not context.communications:
        return "COMMUNICATIONS: none recorded\n"
    lines = [f"COMMUNICATIONS ({context.total_communications} total):"]
    for comm in context.communications[:PROMPT_COMMUNICATIONS]:
        arrow = '←' if comm.direction == 'inbound' else '→'
        subject = (comm.subject or 'No subject')[:PROMPT_SUBJECT_CHARS]
        lines.append(f"{arrow} {comm.type.label} {comm.days_ago(now)}d ago: {subject}")
    latest = context.communications[0]
    lines.append(f"Last: {latest.type.label} {latest.days_ago(now)}d ago")
    return '\n'.join(lines) + "\n"


def _deal_section(context: EnrichedContext, metrics: EngagementMetrics, now: datetime) -> str:
    if not context.deals:
        return ''
    deal = context.deals[0]
    lines = [
        f"DEAL ({len(context.deals)} total, {metrics.active_deals} active):",
        f"Name: {deal.name}",
        f"Stage: {deal.stage}",
    ]
    if deal.amount > 0:
        lines.append(f"Amount: {deal.currency} {deal.amount:,.2f}")
    if deal.close_date:
        lines.append(f"Close date: {deal.close_date.date().isoformat()}")
        days_to_close = math.ceil((deal.close_date - now).total_seconds() / 86400)
        if 0 < days_to_close <= 30:
            urgency = 'URGENT' if days_to_close <= 7 else 'Upcoming'
            lines.append(f"Days until close: {days_to_close} ({urgency})")
    idle_days = deal_days_since_modified(deal, now)
    if idle_days is not None and idle_days > 7:
        state = 'Stalled' if idle_days > 14 else 'Inactive'
        lines.append(f"Last modified: {idle_days}d ago ({state})")
    return '\n'.join(lines) + "\n"


def _signals_section(news: Sequence[CompanyNews], events: Sequence[UpcomingEvent]) -> str:
    lines: List[str] = []
    if news:
        lines.append("COMPANY NEWS:")
        lines.extend(f"- {item.title}" for item in news[:3])
    if events:
        lines.append("UPCOMING EVENTS:")
        lines.extend(f"- {event.name} ({event.date})" for event in events[:3])
    return '\n'.join(lines) + "\n" if lines else ''


def build_user_prompt(context: EnrichedContext, metrics: EngagementMetrics, now: datetime,
                      news: Sequence[CompanyNews] = (), events: Sequence[UpcomingEvent] = (),
                      max_chars: int = MAX_PROMPT_CHARS) -> str:
    """The schema line is always kept; context is cut to fit the budget."""
    sections = [
        _contact_section(context, metrics),
        _company_section(context),
        _communications_section(context, now),
        _deal_section(context, metrics, now),
        _signals_section(news, events),
    ]
    body = '\n'.join(s for s in sections if s)
    budget = max(0, max_chars - len(RESPONSE_SCHEMA) - 1)
    if len(body) > budget:
        body = body[:budget]
    return f"{body}\n{RESPONSE_SCHEMA}"
