"""Ingredient catalog API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user
from src.database import get_db
from src.models.ingredient import Ingredient, normalize_ingredient_name
from src.models.user import User
from src.schemas.recipe import IngredientResponse

router = APIRouter(prefix="/api/v1/ingredients", tags=["ingredients"])


@router.get("", response_model=list[IngredientResponse])
def search_ingredients(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    q: str | None = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
):
    """List catalog ingredients, optionally filtered by a name fragment."""
    query = db.query(Ingredient)
    if q:
        query = query.filter(Ingredient.normalized_name.contains(normalize_ingredient_name(q)))
    return query.order_by(Ingredient.normalized_name).limit(limit).all()
