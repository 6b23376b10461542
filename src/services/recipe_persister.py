"""Recipe persistence in three stages.

1. insert the recipe header (gets the id)
2. bulk insert the ingredient links
3. bulk insert the steps

Each stage commits on its own. A failure stops later stages but leaves
earlier ones in place: the recipe can then be completed by editing it, and
its completeness reflects which stages ran.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.models.category import Category
from src.models.enums import DifficultyLevel
from src.models.recipe import Recipe, RecipeIngredient, RecipeStep
from src.schemas.recipe import CandidateStep
from src.services.exceptions import PersistenceError
from src.services.ingredient_reconciler import ResolvedIngredient

logger = logging.getLogger(__name__)

STAGE_HEADER = "header"
STAGE_INGREDIENTS = "ingredients"
STAGE_STEPS = "steps"


@dataclass
class RecipeHeader:
    """Validated recipe fields written in the first stage."""

    name: str
    author_id: int
    description: str | None = None
    category_id: int | None = None
    prep_time_minutes: int | None = None
    cook_time_minutes: int | None = None
    servings: int | None = None
    difficulty_level: DifficultyLevel | None = None
    image_url: str | None = None


@dataclass
class PersistResult:
    """Ids and counts written by a successful persist."""

    recipe_id: int
    ingredient_count: int
    step_count: int
    dropped_ingredients: list[str] = field(default_factory=list)


class RecipePersister:
    """Writes a recipe, its ingredient links and its steps."""

    def __init__(self, db: Session):
        self.db = db

    def persist(
        self,
        header: RecipeHeader,
        ingredients: list[ResolvedIngredient],
        steps: list[CandidateStep],
    ) -> PersistResult:
        """Run all three stages.

        Raises:
            PersistenceError: naming the failed stage and, after stage 1, the recipe id
        """
        recipe_id = self.create_header(header)
        ingredient_count = self.link_ingredients(recipe_id, ingredients)
        step_count = self.add_steps(recipe_id, steps)
        return PersistResult(
            recipe_id=recipe_id, ingredient_count=ingredient_count, step_count=step_count
        )

    def create_header(self, header: RecipeHeader) -> int:
        """Stage 1: insert the recipe row and return its id."""
        if header.category_id is not None:
            category = self.db.get(Category, header.category_id)
            if category is None:
                raise PersistenceError(
                    STAGE_HEADER, f"Category {header.category_id} does not exist"
                )

        recipe = Recipe(
            author_id=header.author_id,
            category_id=header.category_id,
            name=header.name,
            description=header.description,
            prep_time_minutes=header.prep_time_minutes,
            cook_time_minutes=header.cook_time_minutes,
            servings=header.servings,
            difficulty_level=header.difficulty_level.value if header.difficulty_level else None,
            image_url=header.image_url,
            is_featured=False,
        )
        self._commit(STAGE_HEADER, recipe)
        logger.info(f"Created recipe {recipe.id} for author {header.author_id}")
        return recipe.id

    def link_ingredients(self, recipe_id: int, ingredients: list[ResolvedIngredient]) -> int:
        """Stage 2: link catalog ingredients. Repeated ingredient ids keep the first entry."""
        links = []
        seen: set[int] = set()
        for resolved in ingredients:
            if resolved.ingredient_id in seen:
                logger.info(
                    f"Skipping duplicate ingredient {resolved.ingredient_id} "
                    f"({resolved.name!r}) on recipe {recipe_id}"
                )
                continue
            seen.add(resolved.ingredient_id)
            links.append(
                RecipeIngredient(
                    recipe_id=recipe_id,
                    ingredient_id=resolved.ingredient_id,
                    quantity=resolved.quantity,
                    unit=resolved.unit,
                )
            )

        if links:
            self._commit(STAGE_INGREDIENTS, *links, recipe_id=recipe_id)
        return len(links)

    def add_steps(self, recipe_id: int, steps: list[CandidateStep]) -> int:
        """Stage 3: insert steps in order."""
        rows = [
            RecipeStep(
                recipe_id=recipe_id,
                step_number=step.step_number,
                instruction=step.instruction,
                image_url=step.image_url,
            )
            for step in sorted(steps, key=lambda s: s.step_number)
        ]
        if rows:
            self._commit(STAGE_STEPS, *rows, recipe_id=recipe_id)
        return len(rows)

    def _commit(self, stage: str, *rows, recipe_id: int | None = None) -> None:
        try:
            self.db.add_all(rows)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to write recipe {stage} (recipe_id={recipe_id}): {e}")
            raise PersistenceError(
                stage, f"Could not save recipe {stage}", recipe_id=recipe_id
            ) from e
