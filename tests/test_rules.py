import pytest


def _deal(name="Acme rollout", stage="Negotiation", amount=5000.0):
    from shared.models import Deal

    return Deal(id="d1", name=name, stage=stage, pipeline="Sales Pipeline", amount=amount)


@pytest.mark.parametrize("days", [15, 20, 60, 999])
def test_stale_contact_first_idea_is_high_and_mentions_days(days):
    from ideas.rules import generate_rule_based_ideas
    from shared.models import Priority

    ideas = generate_rule_based_ideas(days, [])

    assert ideas[0].priority is Priority.HIGH
    assert str(days) in ideas[0].reason
    assert ideas[0].type == "Call"


def test_follow_up_between_seven_and_fourteen_days():
    from ideas.rules import generate_rule_based_ideas
    from shared.models import Priority

    ideas = generate_rule_based_ideas(10, [])

    assert ideas[0].title == "Follow-up email"
    assert ideas[0].priority is Priority.MEDIUM


def test_recent_contact_without_deals_is_all_generic():
    from ideas.rules import generate_rule_based_ideas

    ideas = generate_rule_based_ideas(3, [])

    assert len(ideas) == 3
    assert {i.title for i in ideas} == {"Share valuable content"}


def test_stale_contact_with_open_deal_and_no_company():
    from ideas.rules import generate_rule_based_ideas
    from shared.models import Priority

    ideas = generate_rule_based_ideas(20, [_deal()])

    assert [i.priority for i in ideas] == [Priority.HIGH, Priority.HIGH, Priority.LOW]
    assert ideas[0].title == "Urgent contact reactivation"
    assert ideas[1].title == "Update on Acme rollout"
    assert "Negotiation" in ideas[1].reason
    assert ideas[1].type == "WhatsApp"
    assert ideas[2].title == "Share valuable content"


def test_upcoming_event_adds_invitation():
    from ideas.rules import generate_rule_based_ideas
    from ideas.signals import UpcomingEvent
    from shared.models import Priority

    events = [UpcomingEvent(name="Sales Webinar", date="2025-07-01")]
    ideas = generate_rule_based_ideas(20, [_deal()], events)

    assert len(ideas) == 3
    assert ideas[2].title == "Invitation to Sales Webinar"
    assert ideas[2].priority is Priority.MEDIUM
    assert "2025-07-01" in ideas[2].action


def test_rule_based_generation_is_deterministic():
    from ideas.rules import generate_rule_based_ideas

    first = generate_rule_based_ideas(20, [_deal()])
    second = generate_rule_based_ideas(20, [_deal()])

    assert [i.to_dict() for i in first] == [i.to_dict() for i in second]


def test_every_rule_idea_satisfies_idea_shape():
    from ideas.rules import generate_rule_based_ideas
    from shared.models import Priority

    for days in (0, 8, 30):
        for ideas in (generate_rule_based_ideas(days, []), generate_rule_based_ideas(days, [_deal()])):
            for idea in ideas:
                assert idea.title and idea.type and idea.reason and idea.action
                assert isinstance(idea.priority, Priority)
