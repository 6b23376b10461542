"""Category model."""

from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import CreatedAtMixin


class Category(Base, CreatedAtMixin):
    """Recipe category. The full table is the closed set offered to the extractor."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)

    # Relationships
    recipes = relationship("Recipe", back_populates="category")
