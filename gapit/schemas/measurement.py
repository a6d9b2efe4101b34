"""Time-series measurement record produced from a result tree."""
from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, Field


class Measurement(BaseModel):
    """
    One point for the time-series sink.

    ``timestamp`` is omitted when the sink should stamp the point with its
    own ingest time.
    """

    measurement: str
    tags: dict[str, str] = Field(default_factory=dict)
    fields: dict[str, Any] = Field(default_factory=dict)
    timestamp: Optional[Union[int, float]] = None

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
