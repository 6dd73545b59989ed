"""Schemas for job metrics."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from scheduling.schemas.base_schema_model import BaseSchemaModel


class FailedJobSummary(BaseSchemaModel):
    """A recently failed job and why."""

    id: UUID
    recipient_id: UUID
    delivery_method: str
    failure_reason: str | None = None
    retry_count: int
    processed_at: datetime | None = None


class JobMetrics(BaseSchemaModel):
    """Aggregate view of the notification queue."""

    total_jobs: int = Field(..., ge=0)
    status_breakdown: dict[str, int]
    delivery_method_breakdown: dict[str, int]
    type_breakdown: dict[str, int]
    success_rate: float = Field(
        ..., description="sent / (sent + failed)", ge=0.0, le=1.0
    )
    average_processing_seconds: float = Field(
        ..., description="Mean time from creation to a sent state", ge=0.0
    )
    due_backlog: int = Field(..., description="Pending jobs already due", ge=0)
    recent_failures: list[FailedJobSummary] = Field(default_factory=list)
    generated_at: datetime
