"""Pydantic schemas for API requests and responses."""

from src.schemas.auth import AuthResponse, UserLogin, UserRegister, UserResponse
from src.schemas.category import CategoryCreate, CategoryResponse
from src.schemas.recipe import (
    CandidateIngredient,
    CandidateRecipe,
    CandidateStep,
    ExtractionIssue,
    RecipeCreate,
    RecipeResponse,
)

__all__ = [
    "UserRegister",
    "UserLogin",
    "UserResponse",
    "AuthResponse",
    "CategoryCreate",
    "CategoryResponse",
    "CandidateIngredient",
    "CandidateStep",
    "CandidateRecipe",
    "ExtractionIssue",
    "RecipeCreate",
    "RecipeResponse",
]
