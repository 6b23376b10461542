"""Ingredient reconciliation against the shared catalog.

Find-or-create is insert-first: try to insert the ingredient and only look
it up when the insert hits the unique constraint on normalized_name. When
two requests race to create the same name, the loser's insert fails and it
resolves to the winner's row. This is only safe because the database
enforces the constraint; a read-then-insert in Python would race.
"""

import asyncio
import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.models.ingredient import Ingredient, normalize_ingredient_name
from src.schemas.recipe import CandidateIngredient
from src.services.exceptions import ReconciliationError

logger = logging.getLogger(__name__)

POSTGRES_UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    """Check whether an IntegrityError is a uniqueness conflict.

    Other integrity failures (foreign keys, NOT NULL, CHECK) return False.
    """
    orig = error.orig
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate == POSTGRES_UNIQUE_VIOLATION:
        return True
    if isinstance(orig, sqlite3.IntegrityError):
        return str(orig).startswith("UNIQUE constraint failed")
    return False


@dataclass
class ResolvedIngredient:
    """A candidate ingredient bound to its canonical catalog row."""

    ingredient_id: int
    name: str
    quantity: float | None = None
    unit: str | None = None


@dataclass
class ReconciliationResult:
    """Outcome of reconciling a batch."""

    resolved: list[ResolvedIngredient] = field(default_factory=list)
    failures: list[ReconciliationError] = field(default_factory=list)

    @property
    def dropped_count(self) -> int:
        return len(self.failures)

    @property
    def dropped_names(self) -> list[str]:
        return [failure.name for failure in self.failures]


def find_ingredient(db: Session, name: str) -> Ingredient | None:
    """Case-insensitive lookup by normalized name."""
    return (
        db.query(Ingredient)
        .filter(Ingredient.normalized_name == normalize_ingredient_name(name))
        .first()
    )


def find_or_create_ingredient(db: Session, name: str) -> Ingredient:
    """Insert the ingredient, falling back to the existing row on a uniqueness conflict.

    Commits the insert, and rolls the session back on a conflict, so call it
    before staging any other changes on the same session.

    Raises:
        ReconciliationError: if the name is blank or the insert fails for any
            reason other than a uniqueness conflict.
    """
    display_name = " ".join(name.split())
    if not display_name:
        raise ReconciliationError(name, "ingredient name is blank")

    ingredient = Ingredient(name=display_name, normalized_name=normalize_ingredient_name(name))
    try:
        db.add(ingredient)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if not is_unique_violation(e):
            raise ReconciliationError(display_name, str(e.orig)) from e
        existing = find_ingredient(db, display_name)
        if existing is None:
            raise ReconciliationError(
                display_name, "name conflicted but no existing row was found"
            ) from e
        logger.debug(f"Using existing ingredient {existing.id} for {display_name!r}")
        return existing
    except SQLAlchemyError as e:
        db.rollback()
        raise ReconciliationError(display_name, str(e)) from e

    logger.info(f"Added new ingredient {ingredient.id}: {display_name!r}")
    return ingredient


class IngredientReconciler:
    """Resolves a batch of candidate ingredients concurrently.

    Each ingredient gets its own session so that concurrent inserts are
    arbitrated by the database, and one bad ingredient does not poison the
    others.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def _resolve_one(self, candidate: CandidateIngredient) -> ResolvedIngredient:
        db = self.session_factory()
        try:
            ingredient = find_or_create_ingredient(db, candidate.name)
            return ResolvedIngredient(
                ingredient_id=ingredient.id,
                name=ingredient.name,
                quantity=candidate.quantity,
                unit=candidate.unit,
            )
        except ReconciliationError:
            db.rollback()
            raise
        finally:
            db.close()

    async def resolve(self, candidate: CandidateIngredient) -> ResolvedIngredient:
        """Resolve one ingredient without blocking the event loop."""
        return await asyncio.to_thread(self._resolve_one, candidate)

    async def reconcile(self, candidates: list[CandidateIngredient]) -> ReconciliationResult:
        """Resolve every candidate; failures are collected, not raised."""
        outcomes = await asyncio.gather(
            *(self.resolve(candidate) for candidate in candidates),
            return_exceptions=True,
        )

        result = ReconciliationResult()
        for outcome in outcomes:
            if isinstance(outcome, ReconciliationError):
                logger.warning(str(outcome))
                result.failures.append(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.resolved.append(outcome)

        if result.failures:
            logger.warning(
                f"Dropped {result.dropped_count} of {len(candidates)} ingredients: "
                f"{', '.join(result.dropped_names)}"
            )
        return result
