"""FastAPI dependencies for authentication, database and services."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, sessionmaker

from src.database import get_db, get_session_factory
from src.models.user import User
from src.services.auth import decode_access_token
from src.services.cooking_assistant import CookingAssistant
from src.services.llm import LLMService
from src.services.recipe_ingestion import RecipeIngestionService
from src.services.vision import VisionService

security = HTTPBearer()


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    payload = decode_access_token(credentials.credentials)
    user_id = payload.get("sub") if payload else None

    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.id == int(user_id)).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


def get_vision_service() -> VisionService:
    """Get vision service instance."""
    return VisionService()


def get_llm_service() -> LLMService:
    """Get LLM service instance."""
    return LLMService()


def get_ingestion_service(
    db: Annotated[Session, Depends(get_db)],
    session_factory: Annotated[sessionmaker, Depends(get_session_factory)],
    vision: Annotated[VisionService, Depends(get_vision_service)],
) -> RecipeIngestionService:
    """Get recipe ingestion service with dependencies."""
    return RecipeIngestionService(db, session_factory, vision)


def get_cooking_assistant(
    llm: Annotated[LLMService, Depends(get_llm_service)],
) -> CookingAssistant:
    """Get cooking assistant with dependencies."""
    return CookingAssistant(llm)
