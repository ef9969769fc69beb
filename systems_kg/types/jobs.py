"""
Job Types

Processing jobs tracked by the scheduler, plus queue metrics and the
size-based processing strategy.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class JobPriority(str, Enum):
    """Job priority tiers, highest first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_WEIGHTS: dict[str, int] = {
    JobPriority.CRITICAL.value: 4,
    JobPriority.HIGH.value: 3,
    JobPriority.MEDIUM.value: 2,
    JobPriority.LOW.value: 1,
}


class JobType(str, Enum):
    """Kinds of processing work. Analysis is materially slower per byte."""

    EXTRACTION = "extraction"
    ANALYSIS = "analysis"
    CHUNKING = "chunking"


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


StrategyName = Literal["immediate", "queued", "chunked", "deferred"]


class ProcessingStrategy(BaseModel):
    """How a payload of a given size should be processed."""

    strategy: StrategyName
    priority: JobPriority
    chunk_size: int | None = None
    warnings: list[str] = Field(default_factory=list)

    model_config = ConfigDict(use_enum_values=True)


class JobRequest(BaseModel):
    """
    A validated submission waiting for an id.

    Attributes:
        document_id: Payload reference (document the job processes)
        job_type: extraction, analysis or chunking
        priority: critical, high, medium or low
        payload_size: Payload size in bytes
        memory_estimate: Bytes the job is expected to hold while running
    """

    document_id: str
    job_type: JobType = Field(default="extraction", validate_default=True)
    priority: JobPriority = Field(default="medium", validate_default=True)
    payload_size: int = Field(..., ge=0)
    memory_estimate: int | None = Field(default=None, ge=0)
    strategy: StrategyName | None = None
    warnings: list[str] = Field(default_factory=list)

    model_config = ConfigDict(use_enum_values=True)


class Job(BaseModel):
    """A processing job and its lifecycle timestamps (epoch milliseconds)."""

    id: str
    document_id: str
    job_type: JobType
    priority: JobPriority
    payload_size: int
    memory_estimate: int
    status: JobStatus = Field(default="queued", validate_default=True)
    estimated_duration_ms: int = 0
    strategy: StrategyName | None = None
    warnings: list[str] = Field(default_factory=list)
    submitted_at: int
    started_at: int | None = None
    ended_at: int | None = None
    error: str | None = None
    recoverable: bool | None = None

    model_config = ConfigDict(use_enum_values=True)

    @property
    def processing_time_ms(self) -> int | None:
        if self.started_at is None or self.ended_at is None:
            return None
        return self.ended_at - self.started_at


class QueueMetrics(BaseModel):
    """Aggregate scheduler metrics."""

    total_jobs: int
    active_jobs: int
    queue_depth: int
    completed_jobs: int
    failed_jobs: int
    current_memory_usage: int
    average_processing_time_ms: int
