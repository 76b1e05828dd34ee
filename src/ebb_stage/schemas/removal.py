"""Removal-related Pydantic schemas."""

from pydantic import BaseModel, Field


class RemovalRequest(BaseModel):
    """Schema for requesting the removal of a batch of statuses."""

    status_ids: list[int] = Field(
        ...,
        min_length=1,
        max_length=10_000,
        description="Identifiers of the statuses to remove",
    )


class RemovalResponse(BaseModel):
    """Schema summarising what a removal call did."""

    working_set_size: int
    deleted_ids: list[int]
    home_unpushes: int
    cache_failures: int
    channel_failures: int
    stream_entry_batches: int
    federation_notifications: int
