"""SQLAlchemy models."""

from src.models.category import Category
from src.models.ingredient import Ingredient
from src.models.recipe import Recipe, RecipeIngredient, RecipeStep
from src.models.recipe_image_import import RecipeImageImport
from src.models.user import User

__all__ = [
    "User",
    "Category",
    "Ingredient",
    "Recipe",
    "RecipeIngredient",
    "RecipeStep",
    "RecipeImageImport",
]
