"""
Deterministic rule-based ideas, used when the AI backend is disabled or fails.
"""

from typing import List, Sequence

from shared.models import Deal, Idea, Priority

from .signals import UpcomingEvent


def _generic_content_idea() -> Idea:
    return Idea(
        title='Share valuable content',
        type='Email',
        reason='Keep the relationship engaged',
        action='Send a case study or content relevant to their industry',
        priority=Priority.LOW,
    )


def generate_rule_based_ideas(days_since_last_contact: int, deals: Sequence[Deal],
                              events: Sequence[UpcomingEvent] = (),
                              stale_days: int = 14, follow_up_days: int = 7,
                              count: int = 3) -> List[Idea]:
    """Always returns exactly `count` ideas, same input giving the same output."""
    ideas: List[Idea] = []

    if days_since_last_contact > stale_days:
        ideas.append(Idea(
            title='Urgent contact reactivation',
            type='Call',
            reason=f"{days_since_last_contact} days without contact",
            action='Call to resume the conversation and understand where the process stands',
            priority=Priority.HIGH,
        ))
    elif days_since_last_contact > follow_up_days:
        ideas.append(Idea(
            title='Follow-up email',
            type='Email',
            reason='Reasonable time has passed since the last contact',
            action='Send a follow-up email asking about progress and next steps',
            priority=Priority.MEDIUM,
        ))

    if deals:
        deal = deals[0]
        ideas.append(Idea(
            title=f"Update on {deal.name}",
            type='WhatsApp',
            reason=f"Deal in stage {deal.stage}",
            action='Send a WhatsApp message with a deal update and clear up open questions',
            priority=Priority.HIGH,
        ))

    if events:
        event = events[0]
        ideas.append(Idea(
            title=f"Invitation to {event.name}",
            type='Email',
            reason='Relevant upcoming event',
            action=f"Invite them to \"{event.name}\" on {event.date} as an engagement opportunity",
            priority=Priority.MEDIUM,
        ))

    while len(ideas) < count:
        ideas.append(_generic_content_idea())

    return ideas[:count]
