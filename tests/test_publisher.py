import pytest

from fakes import NOW, FakeClickUp, days_ago


def _result(ideas=None, high_priority=True, provenance=None):
    from shared.models import (
        AnalysisResult,
        Communication,
        CommunicationType,
        EngagementMetrics,
        Idea,
        Priority,
        Provenance,
    )

    if ideas is None:
        ideas = [
            Idea("Urgent contact reactivation", "Call", "20 days without contact", "Call them", Priority.HIGH),
            Idea("Update on Acme rollout", "WhatsApp", "Deal in stage Negotiation", "Message them", Priority.MEDIUM),
            Idea("Share valuable content", "Email", "Keep engaged", "Send a case study", Priority.LOW,
                 suggested_timing="Next week"),
        ]
    comms = [
        Communication(id=str(i), type=CommunicationType.EMAIL, timestamp=days_ago(20 + i), subject=f"Mail {i}")
        for i in range(5)
    ]
    return AnalysisResult(
        contact_id="c1",
        contact_name="Ana Lopez",
        contact_email="ana@acme.com",
        contact_phone=None,
        company_name="Not specified",
        company_domain=None,
        company_industry=None,
        lifecycle_stage="lead",
        owner_id="77",
        last_activity=days_ago(3),
        deals=[],
        communications=comms,
        total_communications=5,
        metrics=EngagementMetrics(20, 1, 5000.0, 40, 3),
        ideas=ideas,
        provenance=provenance or Provenance.AI,
        high_priority=high_priority,
        generated_at=NOW,
    )


def _publisher(hubspot, clickup=None, reporter=None, sleeps=None):
    from publish.service import TaskPublisher

    return TaskPublisher(
        hubspot,
        clickup,
        reporter=reporter,
        clock=lambda: NOW,
        sleep=(sleeps.append if sleeps is not None else (lambda s: None)),
    )


def test_format_task_body_sections():
    from publish.service import format_task_body

    body = format_task_body(_result(), segment_id="13121", now=NOW)

    assert "👤 Name: Ana Lopez" in body
    assert "🏢 Company: Not specified" in body
    assert "⏰ Days without contact: 20" in body
    assert "1. Urgent contact reactivation 🔴" in body
    assert "2. Update on Acme rollout 🟡" in body
    assert "3. Share valuable content 🟢" in body
    assert "🕒 Timing: Next week" in body
    assert body.count("- Email: Mail") == 3
    assert "(AI)" in body
    assert body.endswith("📋 Segment: 13121")


def test_format_task_body_marks_rule_based_provenance():
    from publish.service import format_task_body
    from shared.models import Provenance

    body = format_task_body(_result(provenance=Provenance.RULES_AI_FAILED), now=NOW)

    assert "rule-based fallback" in body
    assert "Segment" not in body


def test_crm_task_created_then_associated(hubspot, reporter):
    from shared.models import TaskSource

    publication = _publisher(hubspot, reporter=reporter).publish(_result(), "13121")

    props = hubspot.created_tasks[0]
    assert props["hs_task_subject"] == "💡 Sales Ideas - Ana Lopez"
    assert props["hs_task_status"] == "NOT_STARTED"
    assert props["hs_task_priority"] == "HIGH"
    assert props["hs_task_type"] == "TODO"
    assert props["hs_timestamp"] == NOW.isoformat()
    assert hubspot.task_associations == [("task-1", "c1")]
    assert publication.crm_task.source is TaskSource.HUBSPOT
    assert publication.crm_task.url.endswith("/task-1")
    assert publication.tracker_tasks == []


def test_crm_priority_medium_when_not_high_priority(hubspot):
    _publisher(hubspot).publish(_result(high_priority=False))

    assert hubspot.created_tasks[0]["hs_task_priority"] == "MEDIUM"


def test_crm_failure_propagates_and_skips_tracker(hubspot):
    from shared.errors import ApiError

    hubspot.failures["create_task"] = ApiError("invalid property", 400)
    clickup = FakeClickUp()

    with pytest.raises(ApiError):
        _publisher(hubspot, clickup).publish(_result())
    assert clickup.created == []


def test_association_failure_propagates(hubspot):
    from shared.errors import RateLimitOrTransientError

    hubspot.failures["associate_task_to_contact"] = RateLimitOrTransientError("429", 429)

    with pytest.raises(RateLimitOrTransientError):
        _publisher(hubspot).publish(_result())


def test_tracker_task_per_idea_with_mapped_priority(hubspot, reporter):
    from publish.service import CLICKUP_URGENT

    clickup = FakeClickUp()
    sleeps = []

    publication = _publisher(hubspot, clickup, reporter, sleeps).publish(_result())

    assert [t["priority"] for t in clickup.created] == [2, 3, 4]
    assert CLICKUP_URGENT not in [t["priority"] for t in clickup.created]
    assert clickup.created[0]["name"] == "Urgent contact reactivation - Ana Lopez"
    assert clickup.created[1]["tags"] == ["sales", "hubspot", "whatsapp"]
    assert "**Contact:** Ana Lopez (ana@acme.com)" in clickup.created[0]["description"]
    assert "**Suggested timing:** Next week" in clickup.created[2]["description"]
    assert [t.id for t in publication.tracker_tasks] == ["cu-1", "cu-2", "cu-3"]
    # Pause between tracker calls, not after the last one
    assert sleeps == [0.5, 0.5]


def test_tracker_failure_does_not_stop_remaining_ideas(hubspot, reporter):
    clickup = FakeClickUp(fail_on={1})

    publication = _publisher(hubspot, clickup, reporter).publish(_result())

    assert len(clickup.created) == 3
    assert [t.id for t in publication.tracker_tasks] == ["cu-2", "cu-3"]
    assert publication.tracker_failures == 1
    assert reporter.named("task_failed") == [("task_failed", "c1", "Urgent contact reactivation")]


def test_tracker_skipped_when_not_configured_or_no_ideas(hubspot):
    unconfigured = FakeClickUp(configured=False)
    _publisher(hubspot, unconfigured).publish(_result())
    assert unconfigured.created == []

    configured = FakeClickUp()
    publication = _publisher(hubspot, configured).publish(_result(ideas=[]))
    assert configured.created == []
    assert len(hubspot.created_tasks) == 2
    assert publication.crm_task.id == "task-2"
