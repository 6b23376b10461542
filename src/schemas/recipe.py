"""Recipe schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.enums import DifficultyLevel, RecipeCompleteness

# --- Candidate (extracted, not yet persisted) ---


class CandidateIngredient(BaseModel):
    """Ingredient as extracted from a photo or entered by the user."""

    name: str = Field(..., min_length=1, max_length=255)
    quantity: float | None = Field(None, gt=0, allow_inf_nan=False)
    unit: str | None = Field(None, max_length=50)


class CandidateStep(BaseModel):
    """A numbered instruction."""

    step_number: int = Field(..., ge=1)
    instruction: str = Field(..., min_length=1, max_length=5000)
    image_url: str | None = Field(None, max_length=2048)


class ExtractionIssue(BaseModel):
    """A field-level data-quality problem found while extracting."""

    field: str
    code: str  # "invalid_category" | "invalid_enum"
    message: str
    value: Any = None


class CandidateRecipe(BaseModel):
    """A recipe pending review. Either complete or not produced at all."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)
    category_id: int | None = None
    ingredients: list[CandidateIngredient] = []
    instructions: list[CandidateStep] = []
    prep_time_minutes: int | None = Field(None, ge=0)
    cook_time_minutes: int | None = Field(None, ge=0)
    servings: int | None = Field(None, ge=1)
    difficulty_level: DifficultyLevel | None = None
    issues: list[ExtractionIssue] = []

    @field_validator("instructions")
    @classmethod
    def steps_are_dense(cls, steps: list[CandidateStep]) -> list[CandidateStep]:
        """Step numbers must run 1..N with no gaps or repeats."""
        numbers = sorted(step.step_number for step in steps)
        if numbers != list(range(1, len(steps) + 1)):
            raise ValueError("step numbers must be 1..N with no gaps")
        return sorted(steps, key=lambda step: step.step_number)


class RecipeCreate(CandidateRecipe):
    """Commit a (possibly user-edited) candidate as a recipe."""

    image_url: str | None = Field(None, max_length=2048)


# --- Persisted recipe ---


class RecipeIngredientResponse(BaseModel):
    """Recipe ingredient link response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    ingredient_id: int
    name: str
    quantity: float | None
    unit: str | None
    notes: str | None


class RecipeStepResponse(BaseModel):
    """Recipe step response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    step_number: int
    instruction: str
    image_url: str | None


class RecipeResponse(BaseModel):
    """Recipe response with ingredients and steps."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    author_id: int
    category_id: int | None
    name: str
    description: str | None
    prep_time_minutes: int | None
    cook_time_minutes: int | None
    servings: int | None
    difficulty_level: str | None
    image_url: str | None
    is_featured: bool
    completeness: RecipeCompleteness
    ingredients: list[RecipeIngredientResponse]
    steps: list[RecipeStepResponse]
    created_at: datetime
    updated_at: datetime


class RecipeListResponse(BaseModel):
    """Recipe list item (without ingredients and steps)."""

    id: int
    name: str
    description: str | None
    category_id: int | None
    difficulty_level: str | None
    cook_time_minutes: int | None
    image_url: str | None
    is_featured: bool
    ingredient_count: int
    step_count: int
    completeness: RecipeCompleteness
    created_at: datetime


class RecipeCreatedResponse(BaseModel):
    """Result of committing a candidate."""

    recipe: RecipeResponse
    dropped_ingredients: list[str] = []
    issues: list[ExtractionIssue] = []


# --- Editing after creation ---


class RecipeIngredientAdd(BaseModel):
    """Add an ingredient to an existing recipe by name (find-or-create)."""

    name: str = Field(..., min_length=1, max_length=255)
    quantity: float | None = Field(None, gt=0, allow_inf_nan=False)
    unit: str | None = Field(None, max_length=50)
    notes: str | None = Field(None, max_length=500)


class RecipeStepAdd(BaseModel):
    """Add a step. Without step_number the step is appended."""

    instruction: str = Field(..., min_length=1, max_length=5000)
    step_number: int | None = Field(None, ge=1)
    image_url: str | None = Field(None, max_length=2048)


# --- Catalog ---


class IngredientResponse(BaseModel):
    """Catalog ingredient response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
