"""Cooking assistant API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from src.api.dependencies import get_cooking_assistant, get_current_user
from src.models.user import User
from src.schemas.assistant import (
    ChatRequest,
    ChatResponse,
    CookingTip,
    DescriptionRequest,
    DescriptionResponse,
    ImprovementsRequest,
    RecipeImprovement,
    TipsRequest,
)
from src.services.cooking_assistant import CookingAssistant

router = APIRouter(prefix="/api/v1/assistant", tags=["assistant"])


@router.post("/description", response_model=DescriptionResponse)
async def generate_description(
    request: DescriptionRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    assistant: Annotated[CookingAssistant, Depends(get_cooking_assistant)],
):
    """Draft a short description from ingredients and instructions."""
    description = await assistant.generate_description(request.ingredients, request.instructions)
    return DescriptionResponse(description=description)


@router.post("/improvements", response_model=list[RecipeImprovement])
async def suggest_improvements(
    request: ImprovementsRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    assistant: Annotated[CookingAssistant, Depends(get_cooking_assistant)],
):
    """Suggest ways to improve a recipe."""
    return await assistant.suggest_improvements(request.recipe)


@router.post("/tips", response_model=list[CookingTip])
async def cooking_tips(
    request: TipsRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    assistant: Annotated[CookingAssistant, Depends(get_cooking_assistant)],
):
    """Give tips for working with the given ingredients."""
    return await assistant.cooking_tips(request.ingredients)


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    assistant: Annotated[CookingAssistant, Depends(get_cooking_assistant)],
):
    """Continue a conversation with the cooking assistant."""
    reply = await assistant.chat(request.messages)
    return ChatResponse(reply=reply)
