"""Recipe image import schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from src.schemas.recipe import CandidateRecipe, RecipeCreate


class RecipeImageImportResponse(BaseModel):
    """Status of a background photo extraction."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    status: str  # pending, processing, completed, failed
    candidate: CandidateRecipe | None = None
    error_message: str | None = None
    processed_at: datetime | None = None
    recipe_id: int | None = None
    created_at: datetime


class RecipeImageImportConfirm(BaseModel):
    """Confirm an import, optionally with the user's edits to the candidate."""

    recipe: RecipeCreate | None = None
