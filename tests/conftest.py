# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from contextlib import contextmanager
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")

from ebb_stage.api.v1.endpoints import removals as removals_endpoints
from ebb_stage.db.session import Base
from ebb_stage.db.session import get_db as app_get_session
from ebb_stage.main import app as fastapi_app
from ebb_stage.models import Account, Follow, Mention, Status, StreamEntry, Tag
from ebb_stage.services.errors import CacheFailure, ChannelFailure
from ebb_stage.services.jobs import InMemoryJobSink
from ebb_stage.services.removal import BatchedRemoveStatusService

TEST_DB_URL = "sqlite://"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


# --- Collaborator fakes -------------------------------------------------------------


class RecordingTimelineCache:
    """Timeline cache that records unpush calls and can fail for chosen recipients."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, int, int]] = []
        self.failing_recipients: set[int] = set()

    def unpush(self, timeline_kind: str, recipient_id: int, status: Any) -> bool:
        if recipient_id in self.failing_recipients:
            raise CacheFailure(f"unpush failed for {recipient_id}")
        self.calls.append((timeline_kind, recipient_id, status.id))
        return True

    def calls_for(self, recipient_id: int) -> list[int]:
        return [status_id for _, recipient, status_id in self.calls if recipient == recipient_id]


class _RecordingPipe:
    def __init__(self) -> None:
        self.published: list[tuple[str, bytes]] = []

    def publish(self, channel: str, payload: bytes) -> None:
        self.published.append((channel, payload))


class RecordingChannel:
    """Publish channel recording each pipelined flush as one list of publishes."""

    def __init__(self) -> None:
        self.flushes: list[list[tuple[str, bytes]]] = []
        self.direct: list[tuple[str, bytes]] = []
        self.fail_flushes = False

    def publish(self, channel: str, payload: bytes) -> None:
        self.direct.append((channel, payload))

    @contextmanager
    def pipelined(self) -> Iterator[_RecordingPipe]:
        pipe = _RecordingPipe()
        yield pipe
        if self.fail_flushes:
            raise ChannelFailure("flush failed")
        self.flushes.append(pipe.published)

    def channels(self) -> list[list[str]]:
        return [[channel for channel, _ in flush] for flush in self.flushes]


@pytest.fixture()
def timeline_cache() -> RecordingTimelineCache:
    return RecordingTimelineCache()


@pytest.fixture()
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture()
def job_sink() -> InMemoryJobSink:
    return InMemoryJobSink()


@pytest.fixture()
def removal_service(
    db_session: Session,
    job_sink: InMemoryJobSink,
    timeline_cache: RecordingTimelineCache,
    channel: RecordingChannel,
) -> BatchedRemoveStatusService:
    return BatchedRemoveStatusService(
        db_session,
        job_sink=job_sink,
        timeline_cache=timeline_cache,
        channel=channel,
    )


# --- Data factories -----------------------------------------------------------------


@pytest.fixture()
def make_account(db_session: Session) -> Callable[..., Account]:
    """Return a factory creating persisted accounts."""

    def _make(username: str, domain: str | None = None) -> Account:
        account = Account(username=username, domain=domain)
        db_session.add(account)
        db_session.commit()
        return account

    return _make


@pytest.fixture()
def follow(db_session: Session) -> Callable[[Account, Account], None]:
    """Return a helper making ``follower`` follow ``target``."""

    def _follow(follower: Account, target: Account) -> None:
        db_session.add(Follow(account_id=follower.id, target_account_id=target.id))
        db_session.commit()

    return _follow


@pytest.fixture()
def make_status(db_session: Session) -> Callable[..., Status]:
    """Return a factory creating persisted statuses with a stream entry."""

    def _make(
        account: Account,
        text: str = "hello",
        *,
        reblog_of: Status | None = None,
        tags: list[str] | None = None,
        mentions: list[Account] | None = None,
        stream_entry: bool = True,
    ) -> Status:
        status = Status(
            account_id=account.id,
            text=text,
            reblog_of_id=reblog_of.id if reblog_of is not None else None,
        )
        db_session.add(status)
        db_session.flush()

        for name in tags or []:
            tag = db_session.query(Tag).filter(Tag.name == name).first()
            if tag is None:
                tag = Tag(name=name)
                db_session.add(tag)
                db_session.flush()
            status.tags.append(tag)
        for mentioned in mentions or []:
            db_session.add(Mention(status_id=status.id, account_id=mentioned.id))
        if stream_entry:
            db_session.add(StreamEntry(status_id=status.id, account_id=account.id))
        # Committed so that a rolled back removal leaves the fixture rows in place.
        db_session.commit()
        db_session.expire(status)
        return status

    return _make


# --- HTTP ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    db_session: Session,
    job_sink: InMemoryJobSink,
    timeline_cache: RecordingTimelineCache,
    channel: RecordingChannel,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    overrides: dict[Callable[..., Any], Callable[..., Any]] = {
        app_get_session: _get_session_override,
        removals_endpoints.get_job_sink_dep: lambda: job_sink,
        removals_endpoints.get_timeline_cache_dep: lambda: timeline_cache,
        removals_endpoints.get_channel_dep: lambda: channel,
    }
    fastapi_app.dependency_overrides.update(overrides)
    try:
        yield
    finally:
        for dependency in overrides:
            fastapi_app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client
