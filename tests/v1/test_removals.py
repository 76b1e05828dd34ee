# tests/v1/test_removals.py
"""Tests for the batch removal endpoint."""

from typing import Any

from ebb_stage.services.errors import JobSinkFailure, StorageFailure
from ebb_stage.services.jobs import DISTRIBUTION_JOB
from ebb_stage.services.removal import BatchedRemoveStatusService


def test_remove_statuses(client: Any, make_account, make_status, follow, job_sink) -> None:
    author = make_account("author")
    follower = make_account("follower")
    follow(follower, author)
    status = make_status(author, tags=["news"])
    status_id = status.id

    response = client.post("/api/v1/removals", json={"status_ids": [status_id]})

    assert response.status_code == 200
    body = response.json()
    assert body["deleted_ids"] == [status_id]
    assert body["working_set_size"] == 1
    assert body["home_unpushes"] == 2
    assert body["stream_entry_batches"] == 1
    assert job_sink.jobs(DISTRIBUTION_JOB)


def test_remove_unknown_statuses(client: Any) -> None:
    response = client.post("/api/v1/removals", json={"status_ids": [12345]})

    assert response.status_code == 200
    assert response.json()["working_set_size"] == 0


def test_remove_requires_ids(client: Any) -> None:
    response = client.post("/api/v1/removals", json={"status_ids": []})

    assert response.status_code == 422


def test_storage_failure_maps_to_503(client: Any, mocker) -> None:
    mocker.patch.object(
        BatchedRemoveStatusService, "call", side_effect=StorageFailure("database down")
    )

    response = client.post("/api/v1/removals", json={"status_ids": [1]})

    assert response.status_code == 503


def test_job_sink_failure_maps_to_502(client: Any, mocker) -> None:
    mocker.patch.object(
        BatchedRemoveStatusService, "call", side_effect=JobSinkFailure("queue down")
    )

    response = client.post("/api/v1/removals", json={"status_ids": [1]})

    assert response.status_code == 502
