"""Observation models for captured screen state."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field


class Observation(BaseModel):
    """A snapshot of the controlled environment at a point in time.

    The core treats observations as opaque and only passes them on to the
    decision oracle.
    """

    image_base64: str = Field(..., min_length=1, description="Base64-encoded image")
    media_type: str = Field(default="image/jpeg", description="MIME type of the image")
    width: Annotated[int, Field(gt=0)] = Field(default=1920, description="Image width in pixels")
    height: Annotated[int, Field(gt=0)] = Field(default=1080, description="Image height in pixels")
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the observation was captured",
    )

    model_config = {"frozen": True}

    @property
    def size(self) -> tuple[int, int]:
        """Get image dimensions as (width, height)."""
        return (self.width, self.height)
