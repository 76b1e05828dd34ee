"""Job sink used to hand follow-up work to background workers.

Jobs are Celery tasks sent by name; execution and retries are the workers'
concern.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from celery import Celery
from celery.exceptions import CeleryError
from kombu.exceptions import KombuError

from ebb_stage.core.celery_app import celery_app
from ebb_stage.core.settings import settings
from ebb_stage.services.errors import JobSinkFailure

logger = logging.getLogger(__name__)

DISTRIBUTION_JOB = "distribution"
FEDERATION_NOTIFICATION_JOB = "federation_notification"


class JobSink(Protocol):
    """Contract for bulk job submission."""

    def push_bulk(self, job_kind: str, args_list: Sequence[Sequence[Any]]) -> list[str]: ...


class CeleryJobSink:
    """Send one Celery task per argument tuple over a single broker connection."""

    def __init__(self, app: Celery | None = None, queue: str | None = None) -> None:
        self._app = app or celery_app
        self.queue = queue or settings.job_queue

    def push_bulk(self, job_kind: str, args_list: Sequence[Sequence[Any]]) -> list[str]:
        """Enqueue one ``job_kind`` task per argument tuple.

        Returns:
            The task ids, in submission order.

        Raises:
            JobSinkFailure: If the broker rejected or could not encode a task.
        """
        if not args_list:
            return []

        task_ids: list[str] = []
        try:
            with self._app.producer_or_acquire() as producer:
                for args in args_list:
                    result = self._app.send_task(
                        job_kind,
                        args=list(args),
                        queue=self.queue,
                        producer=producer,
                    )
                    task_ids.append(result.id)
        except (KombuError, CeleryError) as err:
            raise JobSinkFailure(
                f"Failed to enqueue {job_kind} jobs "
                f"({len(task_ids)} of {len(args_list)} sent)"
            ) from err

        logger.info("Enqueued %s %s jobs on %s", len(task_ids), job_kind, self.queue)
        return task_ids


@dataclass
class InMemoryJobSink:
    """Job sink that records submissions instead of enqueueing them."""

    pushes: list[tuple[str, list[list[Any]]]] = field(default_factory=list)

    def push_bulk(self, job_kind: str, args_list: Sequence[Sequence[Any]]) -> list[str]:
        """Record the bulk push and return synthetic job ids."""
        if not args_list:
            return []
        self.pushes.append((job_kind, [list(args) for args in args_list]))
        return [uuid.uuid4().hex for _ in args_list]

    def jobs(self, job_kind: str) -> list[list[Any]]:
        """Return every recorded argument list for ``job_kind``."""
        return [args for kind, batch in self.pushes if kind == job_kind for args in batch]
