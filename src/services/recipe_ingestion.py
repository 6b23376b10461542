"""Photo-to-recipe pipeline: encode, extract, reconcile, persist."""

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from src.config import get_settings
from src.models.category import Category
from src.schemas.recipe import CandidateRecipe
from src.services.image_encoder import EncodedImage
from src.services.ingredient_reconciler import IngredientReconciler
from src.services.recipe_extractor import RecipeExtractor
from src.services.recipe_persister import PersistResult, RecipeHeader, RecipePersister
from src.services.vision import VisionService

logger = logging.getLogger(__name__)


@contextmanager
def pipeline_stage(stage: str, **context) -> Iterator[None]:
    """Log one structured event per stage with its duration and outcome."""
    started = time.perf_counter()
    outcome = "ok"
    try:
        yield
    except BaseException as e:
        outcome = type(e).__name__
        raise
    finally:
        duration_ms = round((time.perf_counter() - started) * 1000, 1)
        logger.info(
            f"pipeline stage {stage} finished: {outcome} in {duration_ms}ms",
            extra={"stage": stage, "duration_ms": duration_ms, "outcome": outcome, **context},
        )


def list_category_choices(db: Session) -> list[dict]:
    """The closed category set offered to the extractor."""
    categories = db.query(Category).order_by(Category.name).all()
    return [{"id": c.id, "name": c.name} for c in categories]


def apply_cook_time_floor(candidate: CandidateRecipe, minimum: int) -> CandidateRecipe:
    """Raise cook_time_minutes to the domain minimum. Missing times become the minimum."""
    cook_time = candidate.cook_time_minutes
    if cook_time is not None and cook_time >= minimum:
        return candidate
    return candidate.model_copy(update={"cook_time_minutes": minimum})


class RecipeIngestionService:
    """Composes the pipeline stages.

    extract() and persist() are separate so a caller can let the user review
    the candidate before committing it.
    """

    def __init__(
        self,
        db: Session,
        session_factory: Callable[[], Session],
        vision: VisionService,
    ) -> None:
        self.db = db
        self.settings = get_settings()
        self.extractor = RecipeExtractor(vision)
        self.reconciler = IngredientReconciler(session_factory)
        self.persister = RecipePersister(db)

    async def extract(self, image: EncodedImage, categories: list[dict]) -> CandidateRecipe:
        """Extract a candidate and apply the cook-time floor.

        Raises:
            ExtractionServiceError, ExtractionParseError
        """
        with pipeline_stage("extract", media_type=image.media_type):
            candidate = await self.extractor.extract(image, categories)
        return apply_cook_time_floor(candidate, self.settings.min_cook_time_minutes)

    async def persist(
        self,
        candidate: CandidateRecipe,
        author_id: int,
        image_url: str | None = None,
    ) -> PersistResult:
        """Reconcile ingredients and write the recipe.

        Dropped ingredients are reported on the result, not raised.

        Raises:
            PersistenceError
        """
        with pipeline_stage("reconcile", ingredient_count=len(candidate.ingredients)):
            reconciled = await self.reconciler.reconcile(candidate.ingredients)

        header = RecipeHeader(
            name=candidate.name,
            author_id=author_id,
            description=candidate.description,
            category_id=candidate.category_id,
            prep_time_minutes=candidate.prep_time_minutes,
            cook_time_minutes=candidate.cook_time_minutes,
            servings=candidate.servings,
            difficulty_level=candidate.difficulty_level,
            image_url=image_url,
        )
        with pipeline_stage("persist", author_id=author_id):
            result = self.persister.persist(header, reconciled.resolved, candidate.instructions)

        result.dropped_ingredients = reconciled.dropped_names
        return result

    async def extract_and_persist(
        self,
        image: EncodedImage,
        categories: list[dict],
        author_id: int,
        image_url: str | None = None,
    ) -> tuple[CandidateRecipe, PersistResult]:
        """Run the whole pipeline without a review step."""
        candidate = await self.extract(image, categories)
        result = await self.persist(candidate, author_id, image_url=image_url)
        return candidate, result
