"""RecipeImageImport model for background photo extraction."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text

from src.database import Base
from src.models.enums import ImportStatus
from src.models.mixins import TimestampMixin


class RecipeImageImport(Base, TimestampMixin):
    """A photo submitted for extraction, holding the candidate until it is confirmed."""

    __tablename__ = "recipe_image_imports"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ImportStatus.PENDING, index=True)
    media_type = Column(String(50), nullable=False)
    candidate = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id"), nullable=True)
