"""Outcome model for executed actions."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class ActionOutcome(BaseModel):
    """Result of applying a non-terminal action.

    A failed outcome always carries a non-empty error description.
    """

    success: bool = Field(..., description="Whether the effector reported success")
    error: str | None = Field(default=None, description="Failure description")
    data: str | None = Field(default=None, description="Payload (file_read content)")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _failure_has_error(self) -> ActionOutcome:
        if not self.success and not self.error:
            raise ValueError("a failed outcome requires an error description")
        return self

    @classmethod
    def ok(cls, data: str | None = None) -> ActionOutcome:
        """Create a successful outcome."""
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> ActionOutcome:
        """Create a failed outcome."""
        return cls(success=False, error=error or "unknown error")

    @property
    def status(self) -> str:
        """Short status label used in logs and decision context."""
        return "OK" if self.success else f"ERROR: {self.error}"
