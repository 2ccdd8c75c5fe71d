"""
Sales guide document fetcher (Google Docs plain-text export).

Best effort: any failure yields None and generation continues without it.
"""

import time
import logging
from typing import Callable, Optional

import requests

from shared_config import GuideConfig

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36'


def clean_guide_text(raw: str, max_chars: int) -> str:
    """Normalize newlines, trim lines, drop blank ones, cap the size."""
    lines = raw.replace('\r\n', '\n').replace('\r', '\n').split('\n')
    return '\n'.join(line.strip() for line in lines if line.strip())[:max_chars]


class GuideFetcher:
    """Fetches the guide at most once per cache window, failures included."""

    def __init__(self, config: GuideConfig, monotonic: Callable[[], float] = time.monotonic):
        self.config = config
        self.monotonic = monotonic
        self._text: Optional[str] = None
        self._fetched_at: Optional[float] = None

    def _cache_fresh(self) -> bool:
        if self._fetched_at is None:
            return False
        return self.monotonic() - self._fetched_at < self.config.cache_ttl_minutes * 60

    def fetch(self) -> Optional[str]:
        if not self.config.is_configured():
            return None
        if self._cache_fresh():
            logger.debug("📋 Using cached sales guide")
            return self._text

        self._text = self._download()
        self._fetched_at = self.monotonic()
        return self._text

    def _download(self) -> Optional[str]:
        try:
            logger.info("   📖 Fetching sales guide...")
            response = requests.get(
                self.config.url,
                headers={'User-Agent': USER_AGENT},
                timeout=self.config.timeout_seconds,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.warning(f"   ⚠️ Could not fetch sales guide: {e}")
            logger.warning("   Continuing without the guide (is the document shared publicly?)")
            return None

        guide = clean_guide_text(response.text or '', self.config.max_chars)
        if len(guide) > self.config.min_chars:
            logger.info(f"   ✅ Sales guide loaded ({len(guide)} chars)")
            return guide

        logger.warning("   ⚠️ Sales guide is empty or too short, ignoring it")
        return None
