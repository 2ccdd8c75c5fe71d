"""
ClickUp API client functions.
Secondary tracker: one task per outreach idea.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from shared_config import ClickUpConfig
from .errors import ConfigurationError
from .http import ApiClient

logger = logging.getLogger(__name__)


class ClickUpClient:
    """Creates tasks in the configured ClickUp list."""

    def __init__(self, config: ClickUpConfig, dry_run: bool = False, api: Optional[ApiClient] = None):
        self.config = config
        self.dry_run = dry_run
        self.api = api or ApiClient(
            config.base_url,
            config.get_headers(),
            timeout=config.timeout_seconds,
            max_retries=config.max_retries,
            name='ClickUp',
        )

    def is_configured(self) -> bool:
        return self.config.is_configured()

    def create_task(self, name: str, description: str, priority: int,
                    tags: List[str], status: str = 'to do') -> Dict[str, Any]:
        """Create a task and return {'id', 'name', 'url', 'status'}."""
        if not self.is_configured():
            raise ConfigurationError('ClickUp API key not configured')

        payload = {
            'name': name,
            'description': description,
            'status': status,
            'priority': priority,
            'tags': tags,
            'assignees': [],
            'check_required': False,
        }

        if self.dry_run:
            logger.info(f"🧪 DRY RUN: Would create ClickUp task '{name}' in list {self.config.list_id}")
            task: Dict[str, Any] = {'id': f"dry-run-{uuid.uuid4().hex[:8]}", 'name': name, 'status': status}
        else:
            task = self.api.post(f"/list/{self.config.list_id}/task", payload)
            # Some list configurations wrap the created task
            task = task.get('task') or task

        task_id = str(task.get('id'))
        task_status = task.get('status')
        if isinstance(task_status, dict):
            task_status = task_status.get('status')
        return {
            'id': task_id,
            'name': task.get('name') or name,
            'url': task.get('url') or f"https://app.clickup.com/t/{task_id}",
            'status': task_status or status,
        }
