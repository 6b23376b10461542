"""Background recipe-from-photo import endpoints.

Upload a photo, poll until the candidate is ready, review it, then confirm
to save the recipe.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user, get_ingestion_service
from src.api.recipes import created_response, ingestion_http_error, read_image
from src.database import get_db
from src.models.enums import ImportStatus
from src.models.recipe_image_import import RecipeImageImport
from src.models.user import User
from src.schemas.recipe import CandidateRecipe, RecipeCreatedResponse
from src.schemas.recipe_image_import import RecipeImageImportConfirm, RecipeImageImportResponse
from src.services.exceptions import PersistenceError, RecipeIngestionError
from src.services.recipe_ingestion import RecipeIngestionService

router = APIRouter(prefix="/api/v1/recipes/image-imports", tags=["recipe image imports"])


def get_user_import(db: Session, import_id: int, user: User) -> RecipeImageImport:
    """Get an image import that belongs to the user."""
    recipe_import = (
        db.query(RecipeImageImport)
        .filter(
            RecipeImageImport.id == import_id,
            RecipeImageImport.user_id == user.id,
        )
        .first()
    )
    if not recipe_import:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Import not found")
    return recipe_import


@router.post("", response_model=RecipeImageImportResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_image_import(
    file: Annotated[UploadFile, File(description="Food photo (JPEG, PNG, GIF, or WebP)")],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Upload a food photo for background recipe extraction."""
    from src.tasks.recipe_image_import import process_recipe_image_import

    image = await read_image(file)

    recipe_import = RecipeImageImport(
        user_id=current_user.id,
        status=ImportStatus.PENDING,
        media_type=image.media_type,
    )
    db.add(recipe_import)
    db.commit()
    db.refresh(recipe_import)

    process_recipe_image_import.delay(recipe_import.id, image.data, image.media_type)

    return recipe_import


@router.get("", response_model=list[RecipeImageImportResponse])
def list_image_imports(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    limit: int = 10,
):
    """List recent image imports for the user."""
    return (
        db.query(RecipeImageImport)
        .filter(RecipeImageImport.user_id == current_user.id)
        .order_by(RecipeImageImport.created_at.desc(), RecipeImageImport.id.desc())
        .limit(limit)
        .all()
    )


@router.get("/{import_id}", response_model=RecipeImageImportResponse)
def get_image_import(
    import_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Get import status and the extracted candidate."""
    return get_user_import(db, import_id, current_user)


@router.post(
    "/{import_id}/confirm",
    response_model=RecipeCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def confirm_image_import(
    import_id: int,
    data: RecipeImageImportConfirm,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    service: Annotated[RecipeIngestionService, Depends(get_ingestion_service)],
):
    """Save the extracted candidate (or the user's edited version) as a recipe."""
    recipe_import = get_user_import(db, import_id, current_user)
    if recipe_import.status != ImportStatus.COMPLETED or recipe_import.candidate is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Completed import not found"
        )
    if recipe_import.recipe_id is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Import has already been saved as a recipe",
        )

    image_url = None
    if data.recipe is not None:
        candidate = CandidateRecipe.model_validate(data.recipe.model_dump(exclude={"image_url"}))
        image_url = data.recipe.image_url
    else:
        candidate = CandidateRecipe.model_validate(recipe_import.candidate)

    try:
        result = await service.persist(candidate, current_user.id, image_url=image_url)
    except RecipeIngestionError as e:
        if isinstance(e, PersistenceError) and e.recipe_id is not None:
            # The header stage committed; link the partial recipe so it is not orphaned
            recipe_import.recipe_id = e.recipe_id
            db.commit()
        raise ingestion_http_error(e) from e

    recipe_import.recipe_id = result.recipe_id
    db.commit()

    return created_response(db, result, candidate.issues)


@router.delete("/{import_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_image_import(
    import_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Discard an import."""
    recipe_import = (
        db.query(RecipeImageImport)
        .filter(
            RecipeImageImport.id == import_id,
            RecipeImageImport.user_id == current_user.id,
        )
        .first()
    )
    if recipe_import:
        db.delete(recipe_import)
        db.commit()
