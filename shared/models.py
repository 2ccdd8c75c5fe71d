"""
Data models for the Contact Insights Pipeline.
Contains data classes and structures used across the system.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from dateutil import parser as date_parser

from .errors import ValidationError

# Sentinel for "no date known"; treated as stale by every threshold.
UNKNOWN_DAYS = 999


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse HubSpot timestamps (ISO strings or epoch milliseconds) to aware UTC datetimes."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)) or (isinstance(value, str) and value.isdigit()):
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    else:
        try:
            dt = date_parser.isoparse(str(value))
        except (ValueError, OverflowError):
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_float(value: Any) -> float:
    try:
        return float(value) if value not in (None, '') else 0.0
    except (TypeError, ValueError):
        return 0.0


@dataclass
class Contact:
    """Represents a HubSpot contact with its raw properties."""
    id: str
    properties: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Contact':
        return cls(id=str(data.get('id')), properties=data.get('properties') or {})

    def _prop(self, key: str) -> Optional[str]:
        value = self.properties.get(key)
        return value if value not in (None, '') else None

    @property
    def full_name(self) -> str:
        name = f"{self._prop('firstname') or ''} {self._prop('lastname') or ''}".strip()
        return name or 'No name'

    @property
    def email(self) -> Optional[str]:
        return self._prop('email')

    @property
    def phone(self) -> Optional[str]:
        return self._prop('phone')

    @property
    def company_name(self) -> Optional[str]:
        return self._prop('company')

    @property
    def lifecycle_stage(self) -> str:
        return self._prop('lifecyclestage') or 'unknown'

    @property
    def owner_id(self) -> Optional[str]:
        return self._prop('hubspot_owner_id')

    @property
    def created_at(self) -> Optional[datetime]:
        return parse_timestamp(self._prop('createdate'))

    @property
    def last_modified_at(self) -> Optional[datetime]:
        return parse_timestamp(self._prop('lastmodifieddate'))


@dataclass
class Company:
    """Company associated with a contact."""
    id: str
    name: Optional[str] = None
    domain: Optional[str] = None
    industry: Optional[str] = None
    size: Optional[str] = None
    revenue: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Company':
        props = data.get('properties') or {}
        location = ', '.join(p for p in (props.get('city'), props.get('state'), props.get('country')) if p)
        return cls(
            id=str(data.get('id')),
            name=props.get('name') or None,
            domain=props.get('domain') or None,
            industry=props.get('industry') or None,
            size=props.get('numberofemployees') or None,
            revenue=props.get('annualrevenue') or None,
            location=location or None,
            website=props.get('website') or None,
        )


@dataclass
class Deal:
    """A deal with stage and pipeline already resolved to labels."""
    id: str
    name: str
    stage: str
    pipeline: str
    amount: float = 0.0
    currency: str = 'USD'
    close_date: Optional[datetime] = None
    owner_id: Optional[str] = None
    last_modified: Optional[datetime] = None
    deal_type: Optional[str] = None


@dataclass
class StageCatalog:
    """Pipeline/stage id -> label lookup, fetched once per enrichment."""
    pipelines: Dict[str, str] = field(default_factory=dict)
    stages: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'StageCatalog':
        catalog = cls()
        for pipeline in data.get('results') or []:
            catalog.pipelines[str(pipeline.get('id'))] = pipeline.get('label') or str(pipeline.get('id'))
            for stage in pipeline.get('stages') or []:
                catalog.stages[str(stage.get('id'))] = stage.get('label') or str(stage.get('id'))
        return catalog

    def stage_label(self, stage_id: Optional[str]) -> str:
        if not stage_id:
            return 'unknown'
        if stage_id in self.stages:
            return self.stages[stage_id]
        return f"Stage {stage_id}" if stage_id.isdigit() else stage_id

    def pipeline_label(self, pipeline_id: Optional[str]) -> str:
        if not pipeline_id:
            return 'default'
        if pipeline_id in self.pipelines:
            return self.pipelines[pipeline_id]
        return f"Pipeline {pipeline_id}" if pipeline_id.isdigit() else pipeline_id


class CommunicationType(str, Enum):
    EMAIL = 'EMAIL'
    CALL = 'CALL'
    NOTE = 'NOTE'
    MEETING = 'MEETING'
    TASK = 'TASK'
    OTHER = 'OTHER'

    @classmethod
    def parse(cls, value: Optional[str]) -> 'CommunicationType':
        value = (value or '').upper()
        if value in ('INCOMING_EMAIL', 'FORWARDED_EMAIL'):
            return cls.EMAIL
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass
class Communication:
    """One logged interaction with a contact."""
    id: str
    type: CommunicationType
    timestamp: datetime
    subject: str
    body: str = ''
    direction: str = 'outbound'
    owner_id: Optional[str] = None

    def days_ago(self, now: datetime) -> int:
        return max(0, (now - self.timestamp).days)


@dataclass
class EnrichedContext:
    """Everything known about one contact, built fresh for each analysis."""
    contact: Contact
    company: Optional[Company]
    deals: List[Deal]
    communications: List[Communication]
    total_communications: int
    last_communication_at: Optional[datetime]
    days_since_last_contact: int

    @property
    def company_name(self) -> str:
        if self.company and self.company.name:
            return self.company.name
        return self.contact.company_name or 'Not specified'


@dataclass
class EngagementMetrics:
    days_since_last_contact: int
    active_deals: int
    total_deal_amount: float
    days_since_creation: int
    days_since_last_activity: int


class Priority(str, Enum):
    HIGH = 'High'
    MEDIUM = 'Medium'
    LOW = 'Low'

    @classmethod
    def parse(cls, value: Any) -> 'Priority':
        """Accept the enum, its value, or the Spanish/legacy spellings the backend returns."""
        if isinstance(value, cls):
            return value
        key = str(value or '').strip().lower()
        if key in _PRIORITY_ALIASES:
            return _PRIORITY_ALIASES[key]
        raise ValidationError(f"Unknown priority: {value!r}")


_PRIORITY_ALIASES = {
    'high': Priority.HIGH, 'alta': Priority.HIGH, 'alto': Priority.HIGH,
    'medium': Priority.MEDIUM, 'media': Priority.MEDIUM, 'medio': Priority.MEDIUM, 'normal': Priority.MEDIUM,
    'low': Priority.LOW, 'baja': Priority.LOW, 'bajo': Priority.LOW,
}


@dataclass
class Idea:
    """A single outreach recommendation."""
    title: str
    type: str
    reason: str
    action: str
    priority: Priority
    suggested_timing: Optional[str] = None

    def __post_init__(self):
        for name in ('title', 'type', 'reason', 'action'):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"Idea field '{name}' must be a non-empty string")
            setattr(self, name, value.strip())
        self.priority = Priority.parse(self.priority)
        if self.suggested_timing is not None:
            self.suggested_timing = str(self.suggested_timing).strip() or None

    @classmethod
    def from_dict(cls, data: Any) -> 'Idea':
        if not isinstance(data, dict):
            raise ValidationError(f"Idea must be an object, got {type(data).__name__}")
        return cls(
            title=data.get('title'),
            type=data.get('type'),
            reason=data.get('reason'),
            action=data.get('action'),
            priority=data.get('priority'),
            suggested_timing=data.get('suggestedTiming') or data.get('suggested_timing'),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out['priority'] = self.priority.value
        return out


class Provenance(str, Enum):
    AI = 'ai'
    RULES_AI_DISABLED = 'rules_ai_disabled'
    RULES_AI_FAILED = 'rules_ai_failed'


@dataclass
class GenerationOutcome:
    ideas: List[Idea]
    provenance: Provenance
    error: Optional[str] = None

    @property
    def generated_with_ai(self) -> bool:
        return self.provenance is Provenance.AI


@dataclass
class AnalysisResult:
    """Contact snapshot + ideas, ready for publication."""
    contact_id: str
    contact_name: str
    contact_email: Optional[str]
    contact_phone: Optional[str]
    company_name: str
    company_domain: Optional[str]
    company_industry: Optional[str]
    lifecycle_stage: str
    owner_id: Optional[str]
    last_activity: Optional[datetime]
    deals: List[Deal]
    communications: List[Communication]
    total_communications: int
    metrics: EngagementMetrics
    ideas: List[Idea]
    provenance: Provenance
    high_priority: bool
    generated_at: datetime

    @property
    def generated_with_ai(self) -> bool:
        return self.provenance is Provenance.AI

    def to_dict(self) -> Dict[str, Any]:
        return {
            'contactId': self.contact_id,
            'contactName': self.contact_name,
            'contactEmail': self.contact_email,
            'company': self.company_name,
            'lifecycleStage': self.lifecycle_stage,
            'ownerId': self.owner_id,
            'dealsCount': len(self.deals),
            'activeDeals': self.metrics.active_deals,
            'totalDealAmount': self.metrics.total_deal_amount,
            'daysSinceLastContact': self.metrics.days_since_last_contact,
            'totalCommunications': self.total_communications,
            'ideas': [idea.to_dict() for idea in self.ideas],
            'provenance': self.provenance.value,
            'generatedWithAI': self.generated_with_ai,
            'highPriority': self.high_priority,
            'generatedAt': self.generated_at.isoformat(),
        }


class TaskSource(str, Enum):
    HUBSPOT = 'hubspot'
    CLICKUP = 'clickup'


@dataclass
class PublishedTask:
    id: str
    source: TaskSource
    url: str
    status: str
    name: str = ''


@dataclass
class Publication:
    crm_task: PublishedTask
    tracker_tasks: List[PublishedTask] = field(default_factory=list)
    tracker_failures: int = 0


class ContactState(str, Enum):
    PENDING = 'pending'
    ENRICHING = 'enriching'
    GENERATING = 'generating'
    PUBLISHING = 'publishing'
    DONE = 'done'
    FAILED = 'failed'


@dataclass
class ContactRunRecord:
    """Outcome of one contact inside a batch."""
    contact_id: str
    email: Optional[str] = None
    state: ContactState = ContactState.PENDING
    failed_stage: Optional[ContactState] = None
    crm_task_id: Optional[str] = None
    tracker_task_ids: List[str] = field(default_factory=list)
    provenance: Optional[Provenance] = None
    owner_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.state is ContactState.DONE

    @property
    def generated_with_ai(self) -> bool:
        return self.provenance is Provenance.AI

    def to_dict(self) -> Dict[str, Any]:
        out = {
            'contactId': self.contact_id,
            'email': self.email or 'N/A',
            'success': self.success,
            'state': self.state.value,
        }
        if self.success:
            out.update(
                taskId=self.crm_task_id,
                trackerTaskIds=list(self.tracker_task_ids),
                generatedWithAI=self.generated_with_ai,
                assignedTo=self.owner_id or 'Unassigned',
            )
        else:
            out.update(
                error=self.error,
                failedStage=self.failed_stage.value if self.failed_stage else None,
            )
        return out


@dataclass
class BatchReport:
    segment_id: str
    results: List[ContactRunRecord] = field(default_factory=list)
    skipped: int = 0
    duration_seconds: float = 0.0

    @property
    def total_processed(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'segmentId': self.segment_id,
            'totalProcessed': self.total_processed,
            'successful': self.successful,
            'failed': self.failed,
            'skipped': self.skipped,
            'durationSeconds': round(self.duration_seconds, 1),
            'results': [r.to_dict() for r in self.results],
        }
