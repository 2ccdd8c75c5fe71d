#!/usr/bin/env python3
"""
Centralized Configuration for the Contact Insights Pipeline
Built once at process start and handed to every component.
"""

import os
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional
from dataclasses import dataclass, field

from shared.errors import ConfigurationError

logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = 'your_'


def _is_real_secret(value: Optional[str]) -> bool:
    """Treat empty values and `.env.example` placeholders as missing."""
    return bool(value) and not value.startswith(PLACEHOLDER_PREFIX)


def load_env_file(path: Path) -> Dict[str, str]:
    """Read KEY=VALUE pairs from a .env file. Missing file means no values."""
    values: Dict[str, str] = {}
    if not path.exists():
        return values
    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#') or '=' not in line:
                continue
            key, value = line.split('=', 1)
            values[key.strip()] = value.strip().strip('"').strip("'")
    return values


@dataclass
class HubSpotConfig:
    """HubSpot CRM access."""
    api_key: str
    segment_id: str = '13121'
    base_url: str = 'https://api.hubapi.com'
    timeout_seconds: int = 30
    max_retries: int = 3

    def is_configured(self) -> bool:
        return _is_real_secret(self.api_key)

    def get_headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json'
        }


@dataclass
class ClickUpConfig:
    """ClickUp secondary tracker. Optional."""
    api_key: str = ''
    list_id: str = '901708866988'
    base_url: str = 'https://api.clickup.com/api/v2'
    timeout_seconds: int = 30
    max_retries: int = 3

    def is_configured(self) -> bool:
        return _is_real_secret(self.api_key)

    def get_headers(self) -> Dict[str, str]:
        # ClickUp personal tokens are sent without a scheme
        return {
            'Authorization': self.api_key,
            'Content-Type': 'application/json'
        }


@dataclass
class OpenAIConfig:
    """Generation backend. Optional."""
    api_key: str = ''
    model: str = 'gpt-4-turbo-preview'
    temperature: float = 0.7
    max_tokens: int = 1200
    timeout_seconds: float = 60.0

    def is_configured(self) -> bool:
        return _is_real_secret(self.api_key)


@dataclass
class GuideConfig:
    """Sales guide document folded into the generation prompt."""
    doc_id: str = '1_srPqIupwNV8hNxFShXAbe8RUD3K4565vemu--Ba1Cs'
    max_chars: int = 4000
    min_chars: int = 50
    timeout_seconds: int = 10
    cache_ttl_minutes: int = 10

    @property
    def url(self) -> str:
        return f"https://docs.google.com/document/d/{self.doc_id}/export?format=txt"

    def is_configured(self) -> bool:
        return bool(self.doc_id)


@dataclass
class RateLimitConfig:
    """Pacing between external calls."""
    contact_delay: float = 2.0  # Between contacts in a batch
    tracker_task_delay: float = 0.5  # Between ClickUp tasks of one contact
    pacing_mode: str = 'fixed'  # fixed | adaptive


@dataclass
class ProcessingConfig:
    """Processing limits and thresholds."""
    page_size: int = 100  # Segment membership page size (HubSpot max)
    batch_read_size: int = 100  # Contacts per batch read
    max_membership_pages: int = 500
    engagement_page_limit: int = 100
    max_engagement_pages: int = 10
    communications_window: int = 10  # Recent communications carried downstream
    stale_contact_days: int = 14  # Urgent reactivation / high priority
    follow_up_days: int = 7
    max_ideas: int = 3
    run_deadline_seconds: float = 0  # 0 = no deadline
    task_subject_prefix: str = '💡 Sales Ideas'
    extra_self_task_markers: tuple = ('Ideas de Venta',)  # Subjects of tasks created under older prefixes

    @property
    def self_task_markers(self) -> tuple:
        """Subject fragments identifying tasks this pipeline published; always includes the current prefix."""
        prefix = self.task_subject_prefix.lstrip('💡').strip()
        return tuple(m for m in (prefix,) + tuple(self.extra_self_task_markers) if m)


@dataclass
class SystemConfig:
    """Aggregates every config section."""
    hubspot: HubSpotConfig
    clickup: ClickUpConfig = field(default_factory=ClickUpConfig)
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    guide: GuideConfig = field(default_factory=GuideConfig)
    rate_limits: RateLimitConfig = field(default_factory=RateLimitConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    dry_run: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 env_file: Optional[Path] = None) -> 'SystemConfig':
        """Build the configuration from the environment plus an optional .env file.

        Values already present in the environment win over the .env file.
        """
        if environ is None:
            environ = os.environ
        values: Dict[str, str] = {}
        if env_file is not None:
            values.update(load_env_file(env_file))
        values.update({k: v for k, v in environ.items() if v is not None})

        def get(key: str, default: str = '') -> str:
            return values.get(key, default) or default

        hubspot = HubSpotConfig(
            api_key=get('HUBSPOT_API_KEY'),
            segment_id=get('HUBSPOT_LIST_ID', '13121'),
            base_url=get('HUBSPOT_BASE_URL', 'https://api.hubapi.com'),
            max_retries=int(get('HTTP_MAX_RETRIES', '3')),
        )
        clickup = ClickUpConfig(
            api_key=get('CLICKUP_API_KEY'),
            list_id=get('CLICKUP_LIST_ID', '901708866988'),
            max_retries=int(get('HTTP_MAX_RETRIES', '3')),
        )
        openai = OpenAIConfig(
            api_key=get('OPENAI_API_KEY'),
            model=get('OPENAI_MODEL', 'gpt-4-turbo-preview'),
        )
        guide = GuideConfig(doc_id=get('SALES_GUIDE_DOC_ID', GuideConfig.doc_id))
        rate_limits = RateLimitConfig(
            contact_delay=float(get('CONTACT_DELAY_SECONDS', '2.0')),
            pacing_mode=get('PACING_MODE', 'fixed').lower(),
        )
        processing = ProcessingConfig(
            communications_window=int(get('COMMUNICATIONS_WINDOW', '10')),
            run_deadline_seconds=float(get('RUN_DEADLINE_SECONDS', '0')),
        )
        return cls(
            hubspot=hubspot,
            clickup=clickup,
            openai=openai,
            guide=guide,
            rate_limits=rate_limits,
            processing=processing,
            dry_run=get('DRY_RUN', 'false').lower() == 'true',
        )

    def validate(self) -> Dict[str, bool]:
        """Report which integrations are usable."""
        return {
            'hubspot_api_key': self.hubspot.is_configured(),
            'hubspot_segment_id': bool(self.hubspot.segment_id),
            'clickup': self.clickup.is_configured(),
            'openai': self.openai.is_configured(),
            'sales_guide': self.guide.is_configured(),
        }

    def require_hubspot(self) -> None:
        """HubSpot is the only mandatory integration."""
        if not self.hubspot.is_configured():
            raise ConfigurationError("HUBSPOT_API_KEY is not configured")

    def log_config_summary(self):
        """Log current configuration summary."""
        checks = self.validate()
        logger.info("🔧 System Configuration:")
        logger.info(f"   Dry Run: {self.dry_run}")
        logger.info(f"   Segment: {self.hubspot.segment_id}")
        logger.info(f"   HubSpot: {'✅' if checks['hubspot_api_key'] else '❌'}")
        logger.info(f"   OpenAI: {'✅' if checks['openai'] else '❌ (rule-based ideas)'}")
        logger.info(f"   ClickUp: {'✅' if checks['clickup'] else '❌ (skipped)'}")
        logger.info(f"   Contact Delay: {self.rate_limits.contact_delay}s ({self.rate_limits.pacing_mode})")
        if self.processing.run_deadline_seconds > 0:
            logger.info(f"   Run Deadline: {self.processing.run_deadline_seconds}s")

    def __repr__(self) -> str:
        validation = self.validate()
        return f"SystemConfig(validated={all(validation.values())}, checks={validation})"
