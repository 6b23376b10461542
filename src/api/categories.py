"""Category API endpoints."""

import re
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user
from src.database import get_db
from src.models.category import Category
from src.models.user import User
from src.schemas.category import CategoryCreate, CategoryResponse

router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


def slugify(name: str) -> str:
    """Turn a category name into a URL slug ("Main Dishes" -> "main-dishes")."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


@router.get("", response_model=list[CategoryResponse])
def list_categories(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """List all recipe categories."""
    return db.query(Category).order_by(Category.name).all()


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    category_data: CategoryCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Create a recipe category."""
    slug = category_data.slug or slugify(category_data.name)
    if not slug:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Category name must contain letters or digits",
        )

    category = Category(name=category_data.name, slug=slug, description=category_data.description)
    db.add(category)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Category '{slug}' already exists",
        ) from None
    db.refresh(category)
    return category
