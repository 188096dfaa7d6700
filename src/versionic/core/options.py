"""
Class-level versioning options.

* ``editing_time`` – seconds during which successive edits of versioned
  attributes collapse into the current version instead of opening a new one.
* Unknown keys are kept as-is so record types can carry their own settings.
"""

from typing import Any, Dict

from pydantic import BaseModel, field_validator


class VersioningOptions(BaseModel):
    editing_time: int | None = None
    model_config = {"extra": "allow", "frozen": False}

    @field_validator("editing_time")
    @classmethod
    def _non_negative(cls, value: int | None) -> int | None:
        if value is not None and value < 0:
            raise ValueError("editing_time must not be negative")
        return value

    # ------------------------------------------------------------------ #
    # convenience helpers
    # ------------------------------------------------------------------ #
    def get(self, key: str, default: Any = None) -> Any:
        return self.as_dict().get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        """Return only the options that were actually set."""
        return self.model_dump(exclude_none=True)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, dict):
            return self.as_dict() == other
        return super().__eq__(other)
