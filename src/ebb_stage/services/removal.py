"""Batched status removal with timeline, streaming and federation fan-out.

Removing a batch of statuses proceeds in two phases:

1. Snapshot then destroy. The statuses and every reblog of them are loaded,
   everything later fan-out needs is copied into immutable records, and only
   then are the rows deleted. Nothing is read back from storage afterwards.
2. Fan-out. Per author the statuses are retracted from the home timelines of
   local followers; per status a deletion event is published to the public and
   hashtag streams, and remote instances mentioned by local statuses are
   notified once per domain. Follow-up work is handed to the job sink in bulk.

Storage and job sink failures abort the call. Timeline and streaming failures
are logged and counted, and the fan-out carries on.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ebb_stage.core.settings import settings
from ebb_stage.models import Status
from ebb_stage.repositories.status_repo import StatusRepository
from ebb_stage.services.encoding import (
    encode_deletion_event,
    render_federation_payload,
    status_uri,
)
from ebb_stage.services.errors import CacheFailure, ChannelFailure, StorageFailure
from ebb_stage.services.feed import HOME_TIMELINE, TimelineCache
from ebb_stage.services.jobs import DISTRIBUTION_JOB, FEDERATION_NOTIFICATION_JOB, JobSink
from ebb_stage.services.streaming import PublishChannel, hashtag_channel, public_channel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MentionedAccount:
    """Account addressed by a removed status."""

    id: int
    domain: str | None

    @property
    def local(self) -> bool:
        return self.domain is None


@dataclass(frozen=True)
class RemovedStatus:
    """Everything fan-out needs to know about a status once its row is gone."""

    id: int
    account_id: int
    account_username: str
    local: bool
    uri: str | None
    reblog_of_id: int | None = None
    reblog_of_uri: str | None = None
    stream_entry_id: int | None = None
    mentions: tuple[MentionedAccount, ...] = ()
    tags: tuple[str, ...] = ()

    @property
    def remote_mentions(self) -> tuple[MentionedAccount, ...]:
        return tuple(mention for mention in self.mentions if not mention.local)


@dataclass(frozen=True)
class RetractionUnit:
    """Encoded deletion event for one status, shared by every broadcast."""

    status_id: int
    payload: bytes


@dataclass(frozen=True)
class FederationBatchEntry:
    """One outbound deletion notice for a remote instance."""

    payload: bytes
    sender_account_id: int
    recipient_account_id: int

    def as_args(self) -> list[Any]:
        # Job arguments travel as JSON, so the XML goes as text.
        return [self.payload.decode("utf-8"), self.sender_account_id, self.recipient_account_id]


@dataclass(frozen=True)
class StreamEntryBatch:
    """Stream entries of one local author, distributed to its subscribers together."""

    stream_entry_ids: tuple[int, ...]

    def as_args(self) -> list[Any]:
        return [list(self.stream_entry_ids)]


@dataclass(frozen=True)
class RemovalPlan:
    """Immutable result of the snapshot phase."""

    statuses: tuple[RemovedStatus, ...]
    retractions: dict[int, RetractionUnit]
    # Author id -> local recipient ids of the author's home timeline retractions.
    audiences: dict[int, tuple[int, ...]]

    def by_author(self) -> Iterator[tuple[int, list[RemovedStatus]]]:
        """Yield each author with its statuses, in working-set order."""
        grouped: dict[int, list[RemovedStatus]] = {}
        for status in self.statuses:
            grouped.setdefault(status.account_id, []).append(status)
        yield from grouped.items()


@dataclass
class RemovalResult:
    """Summary of one removal call."""

    working_set_size: int = 0
    deleted_ids: list[int] = field(default_factory=list)
    home_unpushes: int = 0
    cache_failures: int = 0
    channel_failures: int = 0
    stream_entry_batches: int = 0
    federation_notifications: int = 0


def chunked(items: Sequence[int], size: int) -> Iterator[tuple[int, ...]]:
    """Yield consecutive slices of ``items`` holding at most ``size`` elements."""
    if size < 1:
        raise ValueError("size must be positive")
    for start in range(0, len(items), size):
        yield tuple(items[start:start + size])


def unique_by_domain(mentions: Iterable[MentionedAccount]) -> list[MentionedAccount]:
    """Return one account per domain, keeping the first seen for each."""
    seen: set[str | None] = set()
    representatives: list[MentionedAccount] = []
    for mention in mentions:
        if mention.domain in seen:
            continue
        seen.add(mention.domain)
        representatives.append(mention)
    return representatives


def _status_id(status: Status | int) -> int:
    return status.id if isinstance(status, Status) else int(status)


class BatchedRemoveStatusService:
    """Delete statuses and their reblogs, then retract them everywhere they were shown."""

    def __init__(
        self,
        session: Session,
        *,
        job_sink: JobSink,
        timeline_cache: TimelineCache,
        channel: PublishChannel,
        stream_entry_batch_size: int | None = None,
        delete_batch_size: int | None = None,
    ) -> None:
        self.session = session
        self.repo = StatusRepository(session)
        self.job_sink = job_sink
        self.timeline_cache = timeline_cache
        self.channel = channel
        if stream_entry_batch_size is None:
            stream_entry_batch_size = settings.stream_entry_batch_size
        if delete_batch_size is None:
            delete_batch_size = settings.delete_batch_size
        if stream_entry_batch_size < 1 or delete_batch_size < 1:
            raise ValueError("batch sizes must be positive")
        self.stream_entry_batch_size = stream_entry_batch_size
        self.delete_batch_size = delete_batch_size

    def call(self, statuses: Iterable[Status | int]) -> RemovalResult:
        """Remove ``statuses`` (instances or ids) and fan out the retraction.

        Args:
            statuses: A preferably batched collection of statuses to remove.

        Returns:
            Counters describing what was retracted and queued.

        Raises:
            StorageFailure: If loading or deleting fails. No fan-out has happened.
            JobSinkFailure: If follow-up jobs could not be enqueued.
        """
        ids = list(dict.fromkeys(_status_id(status) for status in statuses))
        result = RemovalResult()

        plan = self._snapshot_and_destroy(ids, result)
        if not plan.statuses:
            logger.debug("Nothing to remove for %s requested statuses", len(ids))
            return result

        stream_entry_batches: list[StreamEntryBatch] = []
        federation_batches: list[FederationBatchEntry] = []

        # Batch by source account
        for account_id, account_statuses in plan.by_author():
            self._unpush_from_home_timelines(
                plan.audiences.get(account_id, ()), account_statuses, result
            )
            if account_statuses[0].local:
                stream_entry_batches.extend(self._batch_stream_entries(account_statuses))

        # Per status, independent of authorship
        for status in plan.statuses:
            self._unpush_from_public_timelines(status, plan.retractions[status.id], result)
            if status.local:
                federation_batches.extend(self._batch_federation_notifications(status))

        self._dispatch(stream_entry_batches, federation_batches)
        result.stream_entry_batches = len(stream_entry_batches)
        result.federation_notifications = len(federation_batches)

        logger.info(
            "Removed %s statuses (%s with reblogs): %s home unpushes, "
            "%s distribution batches, %s federation notifications, "
            "%s cache failures, %s channel failures",
            len(result.deleted_ids),
            result.working_set_size,
            result.home_unpushes,
            result.stream_entry_batches,
            result.federation_notifications,
            result.cache_failures,
            result.channel_failures,
        )
        return result

    # --- Snapshot and destroy -------------------------------------------------------
    def _snapshot_and_destroy(self, ids: list[int], result: RemovalResult) -> RemovalPlan:
        requested = set(ids)
        try:
            working_set = self._load_working_set(ids)
            plan = self._snapshot(working_set)
            if working_set:
                self._destroy([status.id for status in working_set if status.id in requested])
                self.session.commit()
        except SQLAlchemyError as err:
            self.session.rollback()
            raise StorageFailure(f"Failed to remove statuses {ids[:10]}") from err

        result.working_set_size = len(plan.statuses)
        result.deleted_ids = [status.id for status in plan.statuses if status.id in requested]
        return plan

    def _load_working_set(self, ids: list[int]) -> list[Status]:
        """Return the requested statuses, each followed by its reblogs.

        Reblogs are followed transitively; a status reachable along several
        paths appears once, at its first position.
        """
        roots = self.repo.load_statuses(ids)
        seen = {status.id for status in roots}
        children: dict[int | None, list[Status]] = {}

        frontier = [status.id for status in roots]
        while frontier:
            next_frontier: list[int] = []
            for reblog in self.repo.load_reblogs_for(frontier):
                if reblog.id in seen:
                    continue
                seen.add(reblog.id)
                children.setdefault(reblog.reblog_of_id, []).append(reblog)
                next_frontier.append(reblog.id)
            frontier = next_frontier

        working_set: list[Status] = []
        stack = list(reversed(roots))
        while stack:
            status = stack.pop()
            working_set.append(status)
            stack.extend(reversed(children.get(status.id, [])))
        return working_set

    def _snapshot(self, working_set: list[Status]) -> RemovalPlan:
        statuses: list[RemovedStatus] = []
        retractions: dict[int, RetractionUnit] = {}
        audiences: dict[int, tuple[int, ...]] = {}

        for status in working_set:
            account = status.account
            statuses.append(
                RemovedStatus(
                    id=status.id,
                    account_id=account.id,
                    account_username=account.username,
                    local=account.local,
                    uri=status.uri,
                    reblog_of_id=status.reblog_of_id,
                    reblog_of_uri=self._original_uri(status),
                    stream_entry_id=status.stream_entry.id if status.stream_entry else None,
                    mentions=tuple(
                        MentionedAccount(id=mentioned.id, domain=mentioned.domain)
                        for mentioned in self.repo.mentions_for(status)
                    ),
                    tags=tuple(self.repo.tag_names_for(status)),
                )
            )
            retractions[status.id] = RetractionUnit(
                status_id=status.id,
                payload=encode_deletion_event(status.id),
            )
            if account.id not in audiences:
                recipients = [follower.id for follower in self.repo.list_local_followers(account)]
                if account.local:
                    recipients.append(account.id)
                audiences[account.id] = tuple(recipients)

        return RemovalPlan(
            statuses=tuple(statuses),
            retractions=retractions,
            audiences=audiences,
        )

    @staticmethod
    def _original_uri(status: Status) -> str | None:
        original = status.reblog_of
        if original is None:
            return None
        if original.uri:
            return original.uri
        return status_uri(original.account.username, original.id) if original.local else None

    def _destroy(self, ids: list[int]) -> None:
        # Reblogs go with their originals through ON DELETE CASCADE.
        deleted = self.repo.delete_by_ids(ids, batch_size=self.delete_batch_size)
        logger.debug("Deleted %s status rows", deleted)

    # --- Fan-out --------------------------------------------------------------------
    def _unpush_from_home_timelines(
        self,
        recipients: Sequence[int],
        statuses: list[RemovedStatus],
        result: RemovalResult,
    ) -> None:
        for recipient_id in recipients:
            for status in statuses:
                result.home_unpushes += 1
                try:
                    self.timeline_cache.unpush(HOME_TIMELINE, recipient_id, status)
                except CacheFailure:
                    result.cache_failures += 1
                    logger.warning(
                        "Home timeline of %s may still show removed status %s",
                        recipient_id,
                        status.id,
                        exc_info=True,
                    )

    def _batch_stream_entries(self, statuses: list[RemovedStatus]) -> list[StreamEntryBatch]:
        stream_entry_ids = [
            status.stream_entry_id for status in statuses if status.stream_entry_id is not None
        ]
        return [
            StreamEntryBatch(stream_entry_ids=batch)
            for batch in chunked(stream_entry_ids, self.stream_entry_batch_size)
        ]

    def _unpush_from_public_timelines(
        self,
        status: RemovedStatus,
        retraction: RetractionUnit,
        result: RemovalResult,
    ) -> None:
        payload = retraction.payload
        try:
            with self.channel.pipelined() as pipe:
                pipe.publish(public_channel(), payload)
                if status.local:
                    pipe.publish(public_channel(local=True), payload)

                for hashtag in status.tags:
                    pipe.publish(hashtag_channel(hashtag), payload)
                    if status.local:
                        pipe.publish(hashtag_channel(hashtag, local=True), payload)
        except ChannelFailure:
            result.channel_failures += 1
            logger.warning(
                "Streaming subscribers were not told about removed status %s",
                status.id,
                exc_info=True,
            )

    def _batch_federation_notifications(
        self, status: RemovedStatus
    ) -> list[FederationBatchEntry]:
        remote_mentions = status.remote_mentions
        if not remote_mentions:
            return []

        payload = render_federation_payload(status)
        return [
            FederationBatchEntry(
                payload=payload,
                sender_account_id=status.account_id,
                recipient_account_id=recipient.id,
            )
            for recipient in unique_by_domain(remote_mentions)
        ]

    def _dispatch(
        self,
        stream_entry_batches: list[StreamEntryBatch],
        federation_batches: list[FederationBatchEntry],
    ) -> None:
        if stream_entry_batches:
            self.job_sink.push_bulk(
                DISTRIBUTION_JOB, [batch.as_args() for batch in stream_entry_batches]
            )
        if federation_batches:
            self.job_sink.push_bulk(
                FEDERATION_NOTIFICATION_JOB, [entry.as_args() for entry in federation_batches]
            )
