"""
Generation backend: OpenAI chat completions in JSON mode.
"""

import json
import logging
from typing import Any, Dict, Optional

import openai

from shared_config import OpenAIConfig
from .errors import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)


class IdeaBackend:
    """Wraps the OpenAI client. The SDK client is created on first use."""

    def __init__(self, config: OpenAIConfig, client: Optional[Any] = None):
        self.config = config
        self._client = client

    def is_configured(self) -> bool:
        return self._client is not None or self.config.is_configured()

    @property
    def client(self):
        if self._client is None:
            if not self.config.is_configured():
                raise ConfigurationError('OPENAI_API_KEY not configured')
            self._client = openai.OpenAI(api_key=self.config.api_key, timeout=self.config.timeout_seconds)
        return self._client

    def complete_json(self, system_message: str, prompt: str) -> Dict[str, Any]:
        """Return the backend's JSON object. Raises ValidationError for non-JSON output."""
        response = self.client.chat.completions.create(
            model=self.config.model,
            messages=[
                {"role": "system", "content": system_message},
                {"role": "user", "content": prompt},
            ],
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content or ''
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse backend response as JSON: {e}")
            raise ValidationError(f"Backend returned non-JSON content: {content[:200]!r}") from e
        if not isinstance(data, dict):
            raise ValidationError(f"Backend returned {type(data).__name__}, expected object")
        return data
