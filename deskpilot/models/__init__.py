"""Shared data models for DeskPilot.

All models use Pydantic for validation and serialization.
"""

from deskpilot.models.actions import Action, ActionType, normalize_and_validate
from deskpilot.models.observations import Observation
from deskpilot.models.outcomes import ActionOutcome

__all__ = [
    "Action",
    "ActionOutcome",
    "ActionType",
    "Observation",
    "normalize_and_validate",
]
