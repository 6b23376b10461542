"""Recipe API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session, selectinload

from src.api.dependencies import get_current_user, get_ingestion_service
from src.config import get_settings
from src.database import get_db
from src.models.recipe import Recipe, RecipeIngredient, RecipeStep
from src.models.user import User
from src.schemas.recipe import (
    CandidateRecipe,
    ExtractionIssue,
    RecipeCreate,
    RecipeCreatedResponse,
    RecipeIngredientAdd,
    RecipeIngredientResponse,
    RecipeListResponse,
    RecipeResponse,
    RecipeStepAdd,
    RecipeStepResponse,
)
from src.services.exceptions import (
    ExtractionParseError,
    ExtractionServiceError,
    PersistenceError,
    ReadError,
    ReconciliationError,
    RecipeIngestionError,
)
from src.services.image_encoder import EncodedImage, encode_upload
from src.services.ingredient_reconciler import find_or_create_ingredient
from src.services.recipe_ingestion import (
    RecipeIngestionService,
    list_category_choices,
)
from src.services.recipe_persister import PersistResult

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(prefix="/api/v1/recipes", tags=["recipes"])


def ingestion_http_error(error: RecipeIngestionError) -> HTTPException:
    """Translate a pipeline failure into a single user-facing message."""
    if isinstance(error, ReadError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, ExtractionParseError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="No structured recipe could be read from this photo. Try another photo.",
        )
    if isinstance(error, ExtractionServiceError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Recipe analysis is unavailable right now. Please try again.",
        )
    if isinstance(error, PersistenceError):
        message = "The recipe could not be saved."
        if error.recipe_id is not None:
            message = (
                f"The recipe was created but its {error.stage} could not be saved. "
                "Edit the recipe to add the missing parts."
            )
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": message, "stage": error.stage, "recipe_id": error.recipe_id},
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


async def read_image(file: UploadFile) -> EncodedImage:
    """Validate and encode an uploaded recipe photo.

    Note: must stay async because UploadFile.read() is async.
    """
    if file.size is not None and file.size > settings.max_upload_bytes:
        max_mb = settings.max_upload_bytes // (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size is {max_mb}MB.",
        )
    try:
        return await encode_upload(file)
    except ReadError as e:
        raise ingestion_http_error(e) from e


def load_recipe(db: Session, recipe_id: int) -> Recipe:
    """Get a recipe with its ingredients and steps."""
    recipe = (
        db.query(Recipe)
        .options(selectinload(Recipe.ingredients), selectinload(Recipe.steps))
        .filter(Recipe.id == recipe_id)
        .first()
    )
    if not recipe:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipe not found")
    return recipe


def get_authored_recipe(db: Session, recipe_id: int, user: User) -> Recipe:
    """Get a recipe the user wrote."""
    recipe = load_recipe(db, recipe_id)
    if recipe.author_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipe not found")
    return recipe


def created_response(
    db: Session, result: PersistResult, issues: list[ExtractionIssue] | None = None
) -> RecipeCreatedResponse:
    recipe = load_recipe(db, result.recipe_id)
    return RecipeCreatedResponse(
        recipe=RecipeResponse.model_validate(recipe),
        dropped_ingredients=result.dropped_ingredients,
        issues=issues or [],
    )


def renumber_steps(db: Session, steps: list[RecipeStep]) -> None:
    """Number steps 1..N in list order.

    Goes through negative numbers first so no intermediate state collides
    with the unique (recipe_id, step_number) constraint.
    """
    for index, step in enumerate(steps, start=1):
        step.step_number = -index
    db.flush()
    for index, step in enumerate(steps, start=1):
        step.step_number = index
    db.flush()


# --- Static routes first (before /{recipe_id}) ---


@router.get("", response_model=list[RecipeListResponse])
def list_recipes(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    category_id: int | None = None,
    mine: bool = False,
    q: str | None = None,
    featured: bool = False,
):
    """List recipes, optionally filtered by category, author, name or featured flag."""
    query = db.query(Recipe).options(selectinload(Recipe.ingredients), selectinload(Recipe.steps))
    if category_id is not None:
        query = query.filter(Recipe.category_id == category_id)
    if mine:
        query = query.filter(Recipe.author_id == current_user.id)
    if q:
        query = query.filter(Recipe.name.ilike(f"%{q.strip()}%"))
    if featured:
        query = query.filter(Recipe.is_featured.is_(True))

    recipes = query.order_by(Recipe.created_at.desc(), Recipe.id.desc()).all()

    result = []
    for recipe in recipes:
        result.append(
            RecipeListResponse(
                id=recipe.id,
                name=recipe.name,
                description=recipe.description,
                category_id=recipe.category_id,
                difficulty_level=recipe.difficulty_level,
                cook_time_minutes=recipe.cook_time_minutes,
                image_url=recipe.image_url,
                is_featured=recipe.is_featured,
                ingredient_count=len(recipe.ingredients),
                step_count=len(recipe.steps),
                completeness=recipe.completeness,
                created_at=recipe.created_at,
            )
        )
    return result


@router.post("/extract", response_model=CandidateRecipe)
async def extract_recipe(
    file: Annotated[UploadFile, File(description="Food photo (JPEG, PNG, GIF, or WebP)")],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    service: Annotated[RecipeIngestionService, Depends(get_ingestion_service)],
):
    """Analyze a food photo and return a candidate recipe for review.

    Nothing is saved. Field-level problems (unknown category, bad
    difficulty) are listed in `issues` with the field left empty.
    """
    image = await read_image(file)
    try:
        return await service.extract(image, list_category_choices(db))
    except RecipeIngestionError as e:
        raise ingestion_http_error(e) from e


@router.post("", response_model=RecipeCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_recipe(
    recipe_data: RecipeCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    service: Annotated[RecipeIngestionService, Depends(get_ingestion_service)],
):
    """Save a reviewed candidate as a recipe.

    Ingredients that could not be added to the catalog are listed in
    `dropped_ingredients`.
    """
    # Issues only come from extraction; any the client sends are ignored
    candidate = CandidateRecipe.model_validate(
        recipe_data.model_dump(exclude={"image_url", "issues"})
    )
    try:
        result = await service.persist(candidate, current_user.id, image_url=recipe_data.image_url)
    except RecipeIngestionError as e:
        raise ingestion_http_error(e) from e
    return created_response(db, result)


@router.post(
    "/from-image", response_model=RecipeCreatedResponse, status_code=status.HTTP_201_CREATED
)
async def create_recipe_from_image(
    file: Annotated[UploadFile, File(description="Food photo (JPEG, PNG, GIF, or WebP)")],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    service: Annotated[RecipeIngestionService, Depends(get_ingestion_service)],
):
    """Extract a recipe from a photo and save it without a review step."""
    image = await read_image(file)
    try:
        candidate, result = await service.extract_and_persist(
            image, list_category_choices(db), current_user.id
        )
    except RecipeIngestionError as e:
        raise ingestion_http_error(e) from e
    return created_response(db, result, candidate.issues)


# --- Dynamic recipe routes (must be last) ---


@router.get("/{recipe_id}", response_model=RecipeResponse)
def get_recipe(
    recipe_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Get a recipe with ingredients, steps and how complete it is."""
    return load_recipe(db, recipe_id)


@router.post(
    "/{recipe_id}/ingredients",
    response_model=RecipeIngredientResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_ingredient(
    recipe_id: int,
    ingredient_data: RecipeIngredientAdd,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Add an ingredient to a recipe, creating it in the catalog if needed."""
    recipe = get_authored_recipe(db, recipe_id, current_user)

    try:
        ingredient = find_or_create_ingredient(db, ingredient_data.name)
    except ReconciliationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    already_linked = (
        db.query(RecipeIngredient)
        .filter(
            RecipeIngredient.recipe_id == recipe.id,
            RecipeIngredient.ingredient_id == ingredient.id,
        )
        .first()
    )
    if already_linked:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"'{ingredient.name}' is already in this recipe",
        )

    link = RecipeIngredient(
        recipe_id=recipe.id,
        ingredient_id=ingredient.id,
        quantity=ingredient_data.quantity,
        unit=ingredient_data.unit,
        notes=ingredient_data.notes,
    )
    db.add(link)
    db.commit()
    db.refresh(link)
    return link


@router.delete(
    "/{recipe_id}/ingredients/{ingredient_id}", status_code=status.HTTP_204_NO_CONTENT
)
def remove_ingredient(
    recipe_id: int,
    ingredient_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Unlink an ingredient from a recipe. The catalog entry stays."""
    recipe = get_authored_recipe(db, recipe_id, current_user)
    link = next((i for i in recipe.ingredients if i.ingredient_id == ingredient_id), None)
    if not link:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ingredient not found")
    db.delete(link)
    db.commit()


@router.post(
    "/{recipe_id}/steps",
    response_model=list[RecipeStepResponse],
    status_code=status.HTTP_201_CREATED,
)
def add_step(
    recipe_id: int,
    step_data: RecipeStepAdd,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Insert a step at step_number (or append) and return the renumbered steps."""
    recipe = get_authored_recipe(db, recipe_id, current_user)
    steps = list(recipe.steps)

    position = len(steps) + 1
    if step_data.step_number is not None:
        position = min(step_data.step_number, len(steps) + 1)

    step = RecipeStep(
        recipe_id=recipe.id,
        step_number=0,
        instruction=step_data.instruction,
        image_url=step_data.image_url,
    )
    steps.insert(position - 1, step)
    db.add(step)
    renumber_steps(db, steps)
    db.commit()

    db.refresh(recipe)
    return recipe.steps


@router.delete("/{recipe_id}/steps/{step_number}", status_code=status.HTTP_204_NO_CONTENT)
def delete_step(
    recipe_id: int,
    step_number: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Delete a step and renumber the remaining ones densely."""
    recipe = get_authored_recipe(db, recipe_id, current_user)
    step = next((s for s in recipe.steps if s.step_number == step_number), None)
    if not step:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Step not found")

    remaining = [s for s in recipe.steps if s.id != step.id]
    db.delete(step)
    db.flush()
    renumber_steps(db, remaining)
    db.commit()
