"""Enums for model fields."""

from enum import StrEnum


class DifficultyLevel(StrEnum):
    """How hard a recipe is to cook."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def coerce(cls, value: object) -> "DifficultyLevel | None":
        """Match a free-form value against the enum, ignoring case and padding."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class ImportStatus(StrEnum):
    """Processing status of a background image import."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class RecipeCompleteness(StrEnum):
    """How far the three-stage recipe write got.

    Never stored: derived from which child rows exist.
    """

    CREATED = "created"
    INGREDIENTS_LINKED = "ingredients_linked"
    STEPS_LINKED = "steps_linked"
    COMPLETE = "complete"

    @classmethod
    def from_counts(cls, ingredient_count: int, step_count: int) -> "RecipeCompleteness":
        if ingredient_count and step_count:
            return cls.COMPLETE
        if ingredient_count:
            return cls.INGREDIENTS_LINKED
        if step_count:
            return cls.STEPS_LINKED
        return cls.CREATED
