"""Pydantic models for detection jobs and their block output.

Field names are snake_case in Python; the wire form (``by_alias=True``) uses
the cloud API's PascalCase names so existing clients can parse responses.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class BlockType(str, Enum):
    PAGE = "PAGE"
    LINE = "LINE"
    WORD = "WORD"


class JobStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


class BoundingBox(BaseModel):
    """Axis-aligned box as fractions of the page size (0.0-1.0)."""

    model_config = ConfigDict(populate_by_name=True)

    width: float = Field(ge=0.0, le=1.0, alias="Width")
    height: float = Field(ge=0.0, le=1.0, alias="Height")
    left: float = Field(ge=0.0, le=1.0, alias="Left")
    top: float = Field(ge=0.0, le=1.0, alias="Top")


UNIT_BOX = BoundingBox(width=1.0, height=1.0, left=0.0, top=0.0)


class Geometry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bounding_box: BoundingBox = Field(alias="BoundingBox")


class Block(BaseModel):
    """One PAGE, LINE or WORD node. Structure is implied by list order."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="Id")
    block_type: BlockType = Field(alias="BlockType")
    page: int = Field(ge=1, alias="Page")
    confidence: float = Field(ge=0.0, le=100.0, alias="Confidence")
    text: str | None = Field(default=None, alias="Text")
    geometry: Geometry = Field(alias="Geometry")

    @property
    def bounding_box(self) -> BoundingBox:
        return self.geometry.bounding_box


class DocumentLocation(BaseModel):
    """Reference to an object in the blob store."""

    bucket: str = Field(min_length=1)
    key: str = Field(min_length=1)


class Job(BaseModel):
    """One text detection run, owned by the job store."""

    id: str
    status: JobStatus
    document_location: DocumentLocation
    started_at: datetime
    ended_at: datetime | None = None
    blocks: List[Block] | None = None
    error_message: str | None = None


class DocumentMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pages: int = Field(alias="Pages")


class DetectionResult(BaseModel):
    """Poll response for one job."""

    model_config = ConfigDict(populate_by_name=True)

    job_status: JobStatus = Field(alias="JobStatus")
    status_message: str = Field(alias="StatusMessage")
    blocks: List[Block] | None = Field(default=None, alias="Blocks")
    document_metadata: DocumentMetadata | None = Field(
        default=None, alias="DocumentMetadata",
    )


def make_block(
    block_id: int,
    block_type: BlockType,
    page: int,
    confidence: float,
    box: BoundingBox,
    text: str | None = None,
) -> Block:
    """Build a block from a run-scoped integer id."""
    return Block(
        id=str(block_id),
        block_type=block_type,
        page=page,
        confidence=confidence,
        text=text,
        geometry=Geometry(bounding_box=box),
    )


def clamp_unit(value: float) -> float:
    """Clamp *value* into the closed unit interval."""
    return max(0.0, min(1.0, value))
