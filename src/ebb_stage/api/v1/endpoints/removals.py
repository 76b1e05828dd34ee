# src/ebb_stage/api/v1/endpoints/removals.py
"""Batch removal endpoint for the Ebb Stage API.

The router is meant for the internal network only; authentication is handled
in front of the service.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ebb_stage.db.redis_client import get_redis
from ebb_stage.db.session import get_db
from ebb_stage.schemas.removal import RemovalRequest, RemovalResponse
from ebb_stage.services.errors import JobSinkFailure, StorageFailure
from ebb_stage.services.feed import FeedManager, TimelineCache
from ebb_stage.services.jobs import CeleryJobSink, JobSink
from ebb_stage.services.removal import BatchedRemoveStatusService
from ebb_stage.services.streaming import PublishChannel, StreamingChannel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/removals", tags=["removals"])


def get_job_sink_dep() -> JobSink:
    """Return the Celery-backed job sink."""
    return CeleryJobSink()


def get_timeline_cache_dep() -> TimelineCache:
    """Return the Redis-backed home timeline cache."""
    return FeedManager(get_redis())


def get_channel_dep() -> PublishChannel:
    """Return the Redis streaming publisher."""
    return StreamingChannel(get_redis())


SessionDep = Annotated[Session, Depends(get_db)]
JobSinkDep = Annotated[JobSink, Depends(get_job_sink_dep)]
TimelineCacheDep = Annotated[TimelineCache, Depends(get_timeline_cache_dep)]
ChannelDep = Annotated[PublishChannel, Depends(get_channel_dep)]


def get_removal_service(
    db: SessionDep,
    job_sink: JobSinkDep,
    timeline_cache: TimelineCacheDep,
    channel: ChannelDep,
) -> BatchedRemoveStatusService:
    """Build a removal service bound to the request's session."""
    return BatchedRemoveStatusService(
        db,
        job_sink=job_sink,
        timeline_cache=timeline_cache,
        channel=channel,
    )


RemovalServiceDep = Annotated[BatchedRemoveStatusService, Depends(get_removal_service)]


@router.post("", response_model=RemovalResponse, status_code=status.HTTP_200_OK)
def remove_statuses(
    request: RemovalRequest,
    service: RemovalServiceDep,
) -> RemovalResponse:
    """Remove a batch of statuses and retract them from timelines and peers.

    Args:
        request: Identifiers of the statuses to remove
        service: Removal service bound to the current session

    Returns:
        Counters describing the fan-out

    Raises:
        HTTPException: 503 if storage failed, 502 if follow-up jobs were not queued
    """
    try:
        result = service.call(request.status_ids)
    except StorageFailure as err:
        logger.error("Status removal aborted: %s", err)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Statuses could not be removed",
        ) from err
    except JobSinkFailure as err:
        logger.error("Status removal lost follow-up jobs: %s", err)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Statuses were removed but follow-up jobs were not queued",
        ) from err

    return RemovalResponse(
        working_set_size=result.working_set_size,
        deleted_ids=result.deleted_ids,
        home_unpushes=result.home_unpushes,
        cache_failures=result.cache_failures,
        channel_failures=result.channel_failures,
        stream_entry_batches=result.stream_entry_batches,
        federation_notifications=result.federation_notifications,
    )
