"""Recipe extraction from food photos.

The completion service returns free-form text. It is treated as untrusted:
fences are stripped, the JSON is shape-checked against a strict schema and
only then turned into a CandidateRecipe. A reply either yields a complete
candidate or an ExtractionParseError. Category and difficulty problems are
field-level and recorded as issues on the candidate instead.
"""

import json
import logging
import re
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from src.config import get_settings
from src.models.enums import DifficultyLevel
from src.schemas.recipe import CandidateIngredient, CandidateRecipe, CandidateStep, ExtractionIssue
from src.services.exceptions import (
    DataQualityError,
    ExtractionParseError,
    InvalidCategoryError,
    InvalidEnumError,
)
from src.services.image_encoder import EncodedImage
from src.services.llm_prompts import get_recipe_image_prompt
from src.services.vision import VisionService

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?[ \t]*\n?|\n?```", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` fences wrapped around a model reply."""
    return _CODE_FENCE.sub("", text).strip()


# --- Expected reply shape ---


class _ReplyIngredient(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore", allow_inf_nan=False)

    name: str = Field(..., min_length=1, max_length=255)
    quantity: float | None = Field(None, ge=0)
    unit: str | None = Field(None, max_length=50)


class _ReplyStep(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore", allow_inf_nan=False)

    step_number: int | None = Field(
        None, ge=1, validation_alias=AliasChoices("stepNumber", "step_number")
    )
    instruction: str = Field(..., min_length=1)


class _ReplyRecipe(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore", allow_inf_nan=False)

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    # Checked against the supplied category set separately
    category_id: Any = None
    ingredients: list[_ReplyIngredient]
    instructions: list[_ReplyStep | str]
    prep_time_minutes: float | None = Field(None, ge=0)
    cook_time_minutes: float | None = Field(None, ge=0)
    servings: float | None = Field(None, gt=0)
    # Coerced against DifficultyLevel separately
    difficulty_level: Any = None


def _minutes(value: float | None) -> int | None:
    return None if value is None else int(round(value))


def _build_steps(raw_steps: list[_ReplyStep | str]) -> list[CandidateStep]:
    """Order steps by their stated number (position as fallback) and renumber 1..N."""
    numbered = []
    for position, raw in enumerate(raw_steps, start=1):
        if isinstance(raw, str):
            number, text = position, raw
        else:
            number, text = raw.step_number or position, raw.instruction
        text = text.strip()
        if text:
            numbered.append((number, position, text))

    numbered.sort(key=lambda entry: (entry[0], entry[1]))
    return [
        CandidateStep(step_number=index, instruction=text)
        for index, (_, _, text) in enumerate(numbered, start=1)
    ]


def _build_ingredients(raw_ingredients: list[_ReplyIngredient]) -> list[CandidateIngredient]:
    ingredients = []
    for raw in raw_ingredients:
        name = raw.name.strip()
        if not name:
            continue
        unit = raw.unit.strip() if raw.unit else None
        ingredients.append(
            CandidateIngredient(
                name=name,
                # 0 means "to taste": no amount
                quantity=raw.quantity or None,
                unit=unit or None,
            )
        )
    return ingredients


def _check_category(value: Any, category_ids: set[int]) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value not in category_ids:
        raise InvalidCategoryError(
            "category_id",
            value,
            f"Category {value!r} is not one of the available categories",
        )
    return value


def _check_difficulty(value: Any) -> DifficultyLevel:
    difficulty = DifficultyLevel.coerce(value)
    if difficulty is None:
        raise InvalidEnumError(
            "difficulty_level",
            value,
            f"Difficulty {value!r} is not one of: {', '.join(DifficultyLevel)}",
        )
    return difficulty


def _issue(error: DataQualityError) -> ExtractionIssue:
    return ExtractionIssue(
        field=error.field, code=error.code, message=error.message, value=error.value
    )


def parse_recipe_response(text: str, categories: list[dict]) -> CandidateRecipe:
    """Parse a completion reply into a CandidateRecipe.

    Args:
        text: Raw reply text, possibly fenced
        categories: The closed list of {id, name} dicts offered to the model

    Raises:
        ExtractionParseError: if the reply is not one schema-conforming JSON object
    """
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse recipe reply as JSON: {e}")
        raise ExtractionParseError(f"Response is not valid JSON: {e}", raw_response=text) from e

    if not isinstance(data, dict):
        raise ExtractionParseError(
            f"Expected a JSON object, got {type(data).__name__}", raw_response=text
        )

    try:
        reply = _ReplyRecipe.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Recipe reply does not match the expected schema: {e.error_count()} errors")
        raise ExtractionParseError(
            f"Response does not match the recipe schema: {e}", raw_response=text
        ) from e

    issues: list[ExtractionIssue] = []

    category_id = None
    try:
        category_id = _check_category(reply.category_id, {int(c["id"]) for c in categories})
    except InvalidCategoryError as e:
        issues.append(_issue(e))

    difficulty = None
    try:
        difficulty = _check_difficulty(reply.difficulty_level)
    except InvalidEnumError as e:
        issues.append(_issue(e))

    servings = _minutes(reply.servings)
    try:
        return CandidateRecipe(
            name=reply.name.strip(),
            description=(reply.description or "").strip() or None,
            category_id=category_id,
            ingredients=_build_ingredients(reply.ingredients),
            instructions=_build_steps(reply.instructions),
            prep_time_minutes=_minutes(reply.prep_time_minutes),
            cook_time_minutes=_minutes(reply.cook_time_minutes),
            servings=max(servings, 1) if servings is not None else None,
            difficulty_level=difficulty,
            issues=issues,
        )
    except ValidationError as e:
        raise ExtractionParseError(
            f"Response does not match the recipe schema: {e}", raw_response=text
        ) from e


class RecipeExtractor:
    """Asks a vision model for a recipe and parses the reply."""

    def __init__(self, vision: VisionService) -> None:
        self.vision = vision
        self.settings = get_settings()

    async def extract(self, image: EncodedImage, categories: list[dict]) -> CandidateRecipe:
        """Extract a candidate recipe from an encoded photo.

        Raises:
            ExtractionServiceError: if the completion service call fails
            ExtractionParseError: if the reply cannot be parsed
        """
        prompt = get_recipe_image_prompt(categories)
        response_text = await self.vision.complete(
            prompt,
            image,
            temperature=self.settings.vision_temperature,
            max_tokens=self.settings.vision_max_tokens,
        )

        candidate = parse_recipe_response(response_text, categories)
        for issue in candidate.issues:
            logger.info(f"Extraction issue on {issue.field}: {issue.message}")
        return candidate
