"""Ingredient catalog model."""

import re

from sqlalchemy import Column, Integer, String, UniqueConstraint

from src.database import Base
from src.models.mixins import CreatedAtMixin

_WHITESPACE = re.compile(r"\s+")


def normalize_ingredient_name(name: str) -> str:
    """Lowercase and collapse whitespace so that "Olive  Oil" matches "olive oil"."""
    return _WHITESPACE.sub(" ", name).strip().lower()


class Ingredient(Base, CreatedAtMixin):
    """Canonical ingredient shared by every recipe.

    Rows are created lazily on first reference and never updated.
    """

    __tablename__ = "ingredients"
    __table_args__ = (UniqueConstraint("normalized_name", name="uq_ingredients_normalized_name"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)  # Display name as first seen
    normalized_name = Column(String(255), nullable=False)
