"""Recipe, RecipeIngredient and RecipeStep models."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.enums import RecipeCompleteness
from src.models.mixins import TimestampMixin


class Recipe(Base, TimestampMixin):
    """Recipe header. Ingredients and steps are written in separate stages."""

    __tablename__ = "recipes"

    id = Column(Integer, primary_key=True, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    prep_time_minutes = Column(Integer, nullable=True)
    cook_time_minutes = Column(Integer, nullable=True)
    servings = Column(Integer, nullable=True)
    difficulty_level = Column(String(10), nullable=True)  # "easy" | "medium" | "hard"
    image_url = Column(String(2048), nullable=True)
    is_featured = Column(Boolean, nullable=False, default=False)

    # Relationships
    author = relationship("User", backref="recipes")
    category = relationship("Category", back_populates="recipes")
    ingredients = relationship(
        "RecipeIngredient", back_populates="recipe", cascade="all, delete-orphan"
    )
    steps = relationship(
        "RecipeStep",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeStep.step_number",
    )

    @property
    def completeness(self) -> RecipeCompleteness:
        """Which write stages left rows behind."""
        return RecipeCompleteness.from_counts(len(self.ingredients), len(self.steps))


class RecipeIngredient(Base):
    """Link between a recipe and a catalog ingredient."""

    __tablename__ = "recipe_ingredients"
    __table_args__ = (
        UniqueConstraint("recipe_id", "ingredient_id", name="uq_recipe_ingredient"),
        CheckConstraint("quantity IS NULL OR quantity > 0", name="ck_recipe_ingredient_quantity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id"), nullable=False, index=True)
    ingredient_id = Column(Integer, ForeignKey("ingredients.id"), nullable=False, index=True)
    quantity = Column(Float, nullable=True)
    unit = Column(String(50), nullable=True)  # Free text: "g", "cups", "pieces"
    notes = Column(String(500), nullable=True)

    # Relationships
    recipe = relationship("Recipe", back_populates="ingredients")
    ingredient = relationship("Ingredient", lazy="joined")

    @property
    def name(self) -> str:
        return self.ingredient.name


class RecipeStep(Base):
    """A numbered cooking step. step_number is dense and starts at 1."""

    __tablename__ = "recipe_steps"
    __table_args__ = (UniqueConstraint("recipe_id", "step_number", name="uq_recipe_step_number"),)

    id = Column(Integer, primary_key=True, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id"), nullable=False, index=True)
    step_number = Column(Integer, nullable=False)
    instruction = Column(Text, nullable=False)
    image_url = Column(String(2048), nullable=True)

    # Relationships
    recipe = relationship("Recipe", back_populates="steps")
