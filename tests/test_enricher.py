import pytest

from fakes import NOW, contact_payload, days_ago, engagement, epoch_ms


def _enricher(hubspot, reporter, clock, **settings):
    from enrich.service import ContactEnricher
    from shared_config import ProcessingConfig

    return ContactEnricher(hubspot, ProcessingConfig(**settings), reporter, clock)


def _seed_deal(hubspot, deal_id="d1", stage="appointmentscheduled", pipeline="default", amount="5000"):
    hubspot.associations[("contacts", "c1", "deals")] = [deal_id]
    hubspot.deals[deal_id] = {
        "id": deal_id,
        "properties": {
            "dealname": "Acme rollout",
            "dealstage": stage,
            "pipeline": pipeline,
            "amount": amount,
            "hs_lastmodifieddate": days_ago(3).isoformat(),
        },
    }


PIPELINES = {
    "results": [
        {
            "id": "default",
            "label": "Sales Pipeline",
            "stages": [
                {"id": "appointmentscheduled", "label": "Appointment Scheduled"},
                {"id": "1234567", "label": "Negotiation"},
            ],
        }
    ]
}


def test_enrich_resolves_stage_and_pipeline_labels(hubspot, reporter, clock):
    hubspot.contacts["c1"] = contact_payload("c1")
    _seed_deal(hubspot, stage="1234567")
    hubspot.pipelines = PIPELINES

    context = _enricher(hubspot, reporter, clock).enrich("c1")

    deal = context.deals[0]
    assert deal.stage == "Negotiation"
    assert deal.pipeline == "Sales Pipeline"
    assert deal.amount == 5000.0
    assert hubspot.calls.count("get_deal_pipelines") == 1


def test_stage_catalog_failure_degrades_to_raw_identifiers(hubspot, reporter, clock):
    from shared.errors import RateLimitOrTransientError

    hubspot.contacts["c1"] = contact_payload("c1")
    _seed_deal(hubspot, "d1", stage="appointmentscheduled")
    hubspot.associations[("contacts", "c1", "deals")] = ["d1", "d2"]
    hubspot.deals["d2"] = {"id": "d2", "properties": {"dealname": "Numeric", "dealstage": "98765"}}
    hubspot.failures["get_deal_pipelines"] = RateLimitOrTransientError("503", 503)

    context = _enricher(hubspot, reporter, clock).enrich("c1")

    assert [d.stage for d in context.deals] == ["appointmentscheduled", "Stage 98765"]
    assert [d.pipeline for d in context.deals] == ["default", "default"]
    assert ("enrichment_degraded", "c1", "stage catalog") in reporter.events


def test_no_deals_skips_stage_catalog(hubspot, reporter, clock):
    hubspot.contacts["c1"] = contact_payload("c1")

    context = _enricher(hubspot, reporter, clock).enrich("c1")

    assert context.deals == []
    assert "get_deal_pipelines" not in hubspot.calls


def test_single_deal_failure_keeps_the_others(hubspot, reporter, clock):
    hubspot.contacts["c1"] = contact_payload("c1")
    _seed_deal(hubspot, "d1")
    hubspot.associations[("contacts", "c1", "deals")] = ["missing", "d1"]
    hubspot.pipelines = PIPELINES

    context = _enricher(hubspot, reporter, clock).enrich("c1")

    assert [d.id for d in context.deals] == ["d1"]
    assert ("enrichment_degraded", "c1", "deal missing") in reporter.events


def test_company_missing_or_failing_is_not_fatal(hubspot, reporter, clock):
    from shared.errors import AccessDeniedError

    hubspot.contacts["c1"] = contact_payload("c1", company="Acme from contact")
    hubspot.failures["associations:contacts->companies"] = AccessDeniedError("scope", 403)

    context = _enricher(hubspot, reporter, clock).enrich("c1")

    assert context.company is None
    assert context.company_name == "Acme from contact"
    assert ("enrichment_degraded", "c1", "company") in reporter.events


def test_company_loaded_from_first_association(hubspot, reporter, clock):
    hubspot.contacts["c1"] = contact_payload("c1")
    hubspot.associations[("contacts", "c1", "companies")] = ["co1", "co2"]
    hubspot.companies["co1"] = {"id": "co1", "properties": {"name": "Acme", "domain": "acme.com",
                                                          "city": "Madrid", "country": "Spain"}}

    context = _enricher(hubspot, reporter, clock).enrich("c1")

    assert context.company.name == "Acme"
    assert context.company.location == "Madrid, Spain"
    assert context.company_name == "Acme"


def test_contact_fetch_failure_is_fatal(hubspot, reporter, clock):
    from shared.errors import NotFoundError

    with pytest.raises(NotFoundError):
        _enricher(hubspot, reporter, clock).enrich("nope")


def test_communications_filtered_sorted_and_windowed(hubspot, reporter, clock):
    hubspot.contacts["c1"] = contact_payload("c1")
    page_one = [engagement(i, "EMAIL", days_ago(i + 2)) for i in range(8)]
    page_two = [engagement(100 + i, "CALL", days_ago(20 + i)) for i in range(5)]
    page_two.append(engagement(999, "TASK", days_ago(0), subject="💡 Sales Ideas - Ana Lopez"))
    hubspot.engagement_pages["c1"] = [page_one, page_two]

    context = _enricher(hubspot, reporter, clock, communications_window=10).enrich("c1")

    assert len(context.communications) == 10
    assert context.total_communications == 13
    assert all(c.id != "999" for c in context.communications)
    timestamps = [c.timestamp for c in context.communications]
    assert timestamps == sorted(timestamps, reverse=True)
    # The self-created task from today must not reset the contact clock
    assert context.days_since_last_contact == 2
    assert context.last_communication_at == days_ago(2)


def test_engagement_failure_degrades_to_empty_history(hubspot, reporter, clock):
    from shared.errors import ApiError

    hubspot.contacts["c1"] = contact_payload("c1", lastmodifieddate=str(epoch_ms(days_ago(6))))
    hubspot.failures["get_engagements_page"] = ApiError("bad request", 400)

    context = _enricher(hubspot, reporter, clock).enrich("c1")

    assert context.communications == []
    assert context.days_since_last_contact == 6
    assert ("enrichment_degraded", "c1", "communications") in reporter.events


def test_no_history_and_no_modified_date_is_unknown(hubspot, reporter, clock):
    from shared.models import UNKNOWN_DAYS

    hubspot.contacts["c1"] = contact_payload("c1")

    context = _enricher(hubspot, reporter, clock).enrich("c1")

    assert context.days_since_last_contact == UNKNOWN_DAYS
    assert reporter.events[0] == ("enrichment_started", "c1")


def test_clock_is_used_for_day_counts(hubspot, reporter):
    hubspot.contacts["c1"] = contact_payload("c1")
    hubspot.engagement_pages["c1"] = [[engagement(1, "NOTE", days_ago(20))]]

    context = _enricher(hubspot, reporter, lambda: NOW).enrich("c1")

    assert context.days_since_last_contact == 20


def test_tasks_under_custom_prefix_are_not_communications(hubspot, reporter, clock):
    hubspot.contacts["c1"] = contact_payload("c1")
    hubspot.engagement_pages["c1"] = [[
        engagement(1, "EMAIL", days_ago(9)),
        engagement(2, "TASK", days_ago(0), subject="📌 Next Steps - Ana Lopez"),
    ]]

    context = _enricher(hubspot, reporter, clock, task_subject_prefix="📌 Next Steps").enrich("c1")

    assert [c.id for c in context.communications] == ["1"]
    assert context.days_since_last_contact == 9
