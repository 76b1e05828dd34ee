"""Data access helpers for working with statuses during removal."""
from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy import Select, delete, select
from sqlalchemy.orm import Session, joinedload, selectinload

from ebb_stage.models.account import Account, Follow
from ebb_stage.models.mention import Mention
from ebb_stage.models.status import Status

__all__ = ["StatusRepository"]


def _with_associations(stmt: Select[tuple[Status]]) -> Select[tuple[Status]]:
    return stmt.options(
        joinedload(Status.account),
        joinedload(Status.stream_entry),
        joinedload(Status.reblog_of).joinedload(Status.account),
        selectinload(Status.mentions).joinedload(Mention.account),
        selectinload(Status.tags),
    )


class StatusRepository:
    """Thin wrapper around database access for status removal."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def load_statuses(self, ids: Iterable[int]) -> list[Status]:
        """Return the statuses matching ``ids`` with account and stream entry loaded.

        Unknown ids are ignored, so an already-removed status simply drops out.
        The result keeps the order in which ids were given.
        """
        id_list = list(dict.fromkeys(ids))
        if not id_list:
            return []
        stmt = _with_associations(select(Status).where(Status.id.in_(id_list)))
        by_id = {status.id: status for status in self.session.execute(stmt).unique().scalars()}
        return [by_id[status_id] for status_id in id_list if status_id in by_id]

    def load_reblogs_for(self, ids: Iterable[int]) -> list[Status]:
        """Return the reblogs of any of ``ids`` in one query, ordered by id."""
        id_list = list(ids)
        if not id_list:
            return []
        stmt = _with_associations(select(Status).where(Status.reblog_of_id.in_(id_list)))
        result = self.session.execute(stmt.order_by(Status.id))
        return list(result.unique().scalars())

    def mentions_for(self, status: Status) -> list[Account]:
        """Return the mentioned accounts of ``status`` in mention order."""
        return [mention.account for mention in status.mentions]

    def tag_names_for(self, status: Status) -> list[str]:
        """Return the hashtag names attached to ``status``."""
        return [tag.name for tag in status.tags]

    def list_local_followers(self, account: Account) -> list[Account]:
        """Return the local accounts following ``account``."""
        stmt = (
            select(Account)
            .join(Follow, Follow.account_id == Account.id)
            .where(
                Follow.target_account_id == account.id,
                Account.domain.is_(None),
            )
            .order_by(Account.id)
        )
        return list(self.session.execute(stmt).scalars())

    def delete_by_ids(self, ids: Sequence[int], batch_size: int = 1000) -> int:
        """Delete statuses by id in batches and return the number of rows removed.

        Reblogs, stream entries, mentions and tag links are removed by the
        database through ``ON DELETE CASCADE``.
        """
        deleted = 0
        for start in range(0, len(ids), batch_size):
            chunk = list(ids[start:start + batch_size])
            result = self.session.execute(
                delete(Status)
                .where(Status.id.in_(chunk))
                .execution_options(synchronize_session=False)
            )
            deleted += result.rowcount or 0
        self.session.flush()
        return deleted
