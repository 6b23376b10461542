"""Cooking assistant schemas."""

from typing import Literal

from pydantic import BaseModel, Field


class DescriptionRequest(BaseModel):
    """Request a short recipe description."""

    ingredients: list[str] = Field(..., min_length=1)
    instructions: str = Field(..., max_length=50000)


class DescriptionResponse(BaseModel):
    """Generated description ("" when the assistant is unavailable)."""

    description: str


class ImprovementsRequest(BaseModel):
    """Request improvement ideas for a recipe."""

    recipe: str = Field(..., min_length=1, max_length=50000)


class RecipeImprovement(BaseModel):
    """One suggested improvement."""

    suggestion: str
    reason: str


class TipsRequest(BaseModel):
    """Request cooking tips for ingredients."""

    ingredients: list[str] = Field(..., min_length=1)


class CookingTip(BaseModel):
    """One cooking tip."""

    tip: str
    explanation: str


class ChatMessage(BaseModel):
    """One turn of a cooking assistant conversation."""

    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1, max_length=10000)


class ChatRequest(BaseModel):
    """The conversation so far, oldest first, ending with the user's message."""

    messages: list[ChatMessage] = Field(..., min_length=1, max_length=100)


class ChatResponse(BaseModel):
    """The assistant's reply ("" when the assistant is unavailable)."""

    reply: str
