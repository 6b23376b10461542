"""End-to-end photo-to-recipe pipeline tests."""

import json
import logging

import pytest

from src.models.enums import RecipeCompleteness
from src.models.ingredient import Ingredient
from src.models.recipe import Recipe
from src.schemas.recipe import CandidateRecipe
from src.services.exceptions import ExtractionParseError, ExtractionServiceError
from src.services.recipe_ingestion import (
    RecipeIngestionService,
    apply_cook_time_floor,
    list_category_choices,
)


def pancake_reply(category_id: int, **overrides) -> str:
    reply = {
        "name": "Pancakes",
        "category_id": category_id,
        "ingredients": [{"name": "Flour", "quantity": 200, "unit": "g"}],
        "instructions": [{"stepNumber": 1, "instruction": "Mix."}],
        "prep_time_minutes": 10,
        "cook_time_minutes": 2,
        "servings": 2,
        "difficulty_level": "easy",
    }
    reply.update(overrides)
    return json.dumps(reply)


class TestApplyCookTimeFloor:
    """Tests for the cook-time minimum."""

    def test_raises_short_cook_time(self):
        candidate = CandidateRecipe(name="Toast", cook_time_minutes=2)
        assert apply_cook_time_floor(candidate, 5).cook_time_minutes == 5

    def test_keeps_longer_cook_time(self):
        candidate = CandidateRecipe(name="Stew", cook_time_minutes=90)
        assert apply_cook_time_floor(candidate, 5) is candidate

    def test_missing_cook_time_gets_minimum(self):
        candidate = CandidateRecipe(name="Salad")
        assert apply_cook_time_floor(candidate, 5).cook_time_minutes == 5


def test_list_category_choices(db, categories):
    """Test the category set is offered as id/name pairs."""
    assert list_category_choices(db) == [
        {"id": categories[0].id, "name": "Breakfast"},
        {"id": categories[1].id, "name": "Desserts"},
    ]


@pytest.mark.asyncio
async def test_pancakes_end_to_end(db, session_factory, author, categories, png_image, make_vision):
    """Test a photo becomes a complete recipe with the cook time floored."""
    breakfast = categories[0]
    vision = make_vision(reply=pancake_reply(breakfast.id))
    service = RecipeIngestionService(db, session_factory, vision)

    candidate, result = await service.extract_and_persist(
        png_image, list_category_choices(db), author.id
    )

    assert candidate.cook_time_minutes == 5
    assert result.ingredient_count == 1
    assert result.step_count == 1
    assert result.dropped_ingredients == []

    recipe = db.get(Recipe, result.recipe_id)
    assert recipe.name == "Pancakes"
    assert recipe.cook_time_minutes == 5
    assert recipe.category_id == breakfast.id
    assert recipe.author_id == author.id
    assert recipe.difficulty_level == "easy"
    assert recipe.ingredients[0].name == "Flour"
    assert recipe.ingredients[0].quantity == 200
    assert recipe.steps[0].instruction == "Mix."
    assert recipe.completeness == RecipeCompleteness.COMPLETE


@pytest.mark.asyncio
async def test_reuses_catalog_ingredients(
    db, session_factory, author, categories, png_image, make_vision
):
    """Test a second recipe with the same ingredient does not duplicate it."""
    vision = make_vision(reply=pancake_reply(categories[0].id))
    service = RecipeIngestionService(db, session_factory, vision)

    await service.extract_and_persist(png_image, list_category_choices(db), author.id)
    await service.extract_and_persist(png_image, list_category_choices(db), author.id)

    assert db.query(Recipe).count() == 2
    assert db.query(Ingredient).count() == 1


@pytest.mark.asyncio
async def test_invalid_category_saved_without_category(
    db, session_factory, author, categories, png_image, make_vision
):
    """Test an out-of-set category is reported and the recipe is still saved."""
    vision = make_vision(reply=pancake_reply(4242))
    service = RecipeIngestionService(db, session_factory, vision)

    candidate, result = await service.extract_and_persist(
        png_image, list_category_choices(db), author.id
    )

    assert [i.code for i in candidate.issues] == ["invalid_category"]
    assert db.get(Recipe, result.recipe_id).category_id is None


@pytest.mark.asyncio
async def test_dropped_ingredients_reported(
    db, session_factory, author, categories, png_image, make_vision
):
    """Test an ingredient that cannot be reconciled is reported, not fatal."""
    vision = make_vision()
    service = RecipeIngestionService(db, session_factory, vision)
    candidate = CandidateRecipe.model_validate(
        {
            "name": "Porridge",
            "ingredients": [{"name": "Oats"}, {"name": "   "}],
            "instructions": [{"step_number": 1, "instruction": "Simmer."}],
        }
    )

    result = await service.persist(candidate, author.id)

    assert result.ingredient_count == 1
    assert result.dropped_ingredients == ["   "]


@pytest.mark.asyncio
async def test_extraction_failure_writes_nothing(
    db, session_factory, author, categories, png_image, make_vision
):
    """Test a parse failure aborts before any write."""
    vision = make_vision(reply="I think this is a pancake.")
    service = RecipeIngestionService(db, session_factory, vision)

    with pytest.raises(ExtractionParseError):
        await service.extract_and_persist(png_image, list_category_choices(db), author.id)

    assert db.query(Recipe).count() == 0


@pytest.mark.asyncio
async def test_stage_events_logged(
    db, session_factory, author, categories, png_image, make_vision, caplog
):
    """Test each stage logs its outcome."""
    vision = make_vision(error=ExtractionServiceError("timeout"))
    service = RecipeIngestionService(db, session_factory, vision)

    with caplog.at_level(logging.INFO, logger="src.services.recipe_ingestion"):
        with pytest.raises(ExtractionServiceError):
            await service.extract(png_image, list_category_choices(db))

    records = [r for r in caplog.records if getattr(r, "stage", None) == "extract"]
    assert len(records) == 1
    assert records[0].outcome == "ExtractionServiceError"
    assert records[0].media_type == "image/png"
