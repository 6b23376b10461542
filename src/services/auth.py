"""Authentication service for JWT and password handling."""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import or_
from sqlalchemy.orm import Session

from src.config import get_settings
from src.models.user import User

settings = get_settings()

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def create_access_token(user_id: int, username: str) -> str:
    """Create a JWT access token identifying the recipe author."""
    expire = datetime.now(UTC) + timedelta(minutes=settings.jwt_expiration_minutes)
    to_encode = {
        "sub": str(user_id),
        "username": username,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def authenticate_user(db: Session, login: str, password: str) -> User | None:
    """Authenticate a user by email or username and password."""
    user = (
        db.query(User)
        .filter(or_(User.email == login.lower(), User.username == login))
        .first()
    )
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def find_conflicting_user(db: Session, email: str, username: str) -> User | None:
    """Find a user that already holds this email or username."""
    return (
        db.query(User)
        .filter(or_(User.email == email.lower(), User.username == username))
        .first()
    )


def create_user(
    db: Session,
    email: str,
    username: str,
    password: str,
    display_name: str | None = None,
) -> User:
    """Create a new user."""
    user = User(
        email=email.lower(),
        username=username,
        display_name=display_name or username,
        password_hash=get_password_hash(password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
