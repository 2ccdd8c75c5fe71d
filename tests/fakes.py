from datetime import datetime, timedelta, timezone

from shared.errors import NotFoundError
from shared.notify import PipelineReporter

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def epoch_ms(dt):
    return int(dt.timestamp() * 1000)


def days_ago(days):
    return NOW - timedelta(days=days)


def engagement(eng_id, eng_type, when, subject="Hello", direction=None, body=""):
    metadata = {"subject": subject, "body": body, "text": body}
    if direction:
        metadata["direction"] = direction
    return {
        "engagement": {"id": eng_id, "type": eng_type, "timestamp": epoch_ms(when)},
        "metadata": metadata,
        "associations": {},
    }


def contact_payload(contact_id, first="Ana", last="Lopez", email="ana@acme.com", **extra):
    props = {"firstname": first, "lastname": last, "email": email}
    props.update(extra)
    return {"id": contact_id, "properties": props}


class FakeHubSpot:
    """In-memory stand-in for HubSpotClient. `failures` maps method name to an exception."""

    def __init__(self):
        self.contacts = {}
        self.companies = {}
        self.deals = {}
        self.associations = {}
        self.pipelines = {"results": []}
        self.engagement_pages = {}
        self.segments = {}
        self.membership_pages = {}
        self.legacy_contacts = {}
        self.failures = {}
        self.contact_failures = {}
        self.created_tasks = []
        self.task_associations = []
        self.calls = []

    def _maybe_fail(self, name):
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    def get_segment(self, segment_id):
        self._maybe_fail("get_segment")
        if segment_id not in self.segments:
            raise NotFoundError("list not found", 404)
        return self.segments[segment_id]

    def get_segment_memberships(self, segment_id, params):
        self._maybe_fail("get_segment_memberships")
        pages = self.membership_pages.get(segment_id, [])
        index = int(params.get("after") or 0)
        if index >= len(pages):
            return {"results": []}
        page = {"results": pages[index]}
        if index + 1 < len(pages):
            page["paging"] = {"next": {"after": str(index + 1)}}
        return page

    def get_legacy_list_contacts(self, segment_id, properties, count=100):
        self._maybe_fail("get_legacy_list_contacts")
        return self.legacy_contacts.get(segment_id, [])

    def get_contact(self, contact_id, properties):
        self._maybe_fail("get_contact")
        if contact_id in self.contact_failures:
            raise self.contact_failures[contact_id]
        if contact_id not in self.contacts:
            raise NotFoundError(f"contact {contact_id} not found", 404)
        return self.contacts[contact_id]

    def batch_read_contacts(self, contact_ids, properties):
        self._maybe_fail("batch_read_contacts")
        # HubSpot does not keep input order
        return [self.contacts[i] for i in reversed(list(contact_ids)) if i in self.contacts]

    def get_company(self, company_id, properties):
        self._maybe_fail("get_company")
        return self.companies[company_id]

    def get_deal(self, deal_id, properties):
        self._maybe_fail("get_deal")
        if deal_id not in self.deals:
            raise NotFoundError(f"deal {deal_id} not found", 404)
        return self.deals[deal_id]

    def get_deal_pipelines(self):
        self._maybe_fail("get_deal_pipelines")
        return self.pipelines

    def get_associated_ids(self, from_object, object_id, to_object):
        self._maybe_fail(f"associations:{from_object}->{to_object}")
        return list(self.associations.get((from_object, object_id, to_object), []))

    def get_engagements_page(self, contact_id, limit=100, offset=None):
        self._maybe_fail("get_engagements_page")
        pages = self.engagement_pages.get(contact_id, [])
        index = offset or 0
        if index >= len(pages):
            return {"results": [], "hasMore": False}
        has_more = index + 1 < len(pages)
        return {"results": pages[index], "hasMore": has_more, "offset": index + 1 if has_more else None}

    def create_task(self, properties):
        self._maybe_fail("create_task")
        task_id = f"task-{len(self.created_tasks) + 1}"
        self.created_tasks.append(properties)
        return {"id": task_id, "properties": properties}

    def associate_task_to_contact(self, task_id, contact_id):
        self._maybe_fail("associate_task_to_contact")
        self.task_associations.append((task_id, contact_id))

    @staticmethod
    def task_url(task_id):
        return f"https://app.hubspot.com/contacts/tasks/{task_id}"


class FakeClickUp:
    def __init__(self, configured=True, fail_on=()):
        self.configured = configured
        self.fail_on = set(fail_on)
        self.created = []

    def is_configured(self):
        return self.configured

    def create_task(self, name, description, priority, tags, status="to do"):
        call_number = len(self.created) + 1
        self.created.append({"name": name, "description": description, "priority": priority, "tags": tags})
        if call_number in self.fail_on:
            raise RuntimeError(f"ClickUp call {call_number} failed")
        task_id = f"cu-{call_number}"
        return {"id": task_id, "name": name, "url": f"https://app.clickup.com/t/{task_id}", "status": status}


class FakeBackend:
    def __init__(self, payload=None, error=None, configured=True):
        self.payload = payload
        self.error = error
        self.configured = configured
        self.prompts = []

    def is_configured(self):
        return self.configured

    def complete_json(self, system_message, prompt):
        self.prompts.append((system_message, prompt))
        if self.error is not None:
            raise self.error
        return self.payload


class FakeGuide:
    def __init__(self, text=None):
        self.text = text
        self.fetches = 0

    def fetch(self):
        self.fetches += 1
        return self.text


class RecordingReporter(PipelineReporter):
    def __init__(self):
        self.events = []

    def enrichment_started(self, contact_id):
        self.events.append(("enrichment_started", contact_id))

    def enrichment_degraded(self, contact_id, part, error):
        self.events.append(("enrichment_degraded", contact_id, part))

    def strategy_chosen(self, contact_id, provenance, reason=None):
        self.events.append(("strategy_chosen", contact_id, provenance))

    def task_published(self, contact_id, task):
        self.events.append(("task_published", contact_id, task.source))

    def task_failed(self, contact_id, idea_title, error):
        self.events.append(("task_failed", contact_id, idea_title))

    def contact_failed(self, contact_id, stage, error):
        self.events.append(("contact_failed", contact_id, stage))

    def batch_completed(self, report):
        self.events.append(("batch_completed", report.total_processed))

    def named(self, name):
        return [e for e in self.events if e[0] == name]

