"""Ingredient reconciliation tests."""

import sqlite3
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from src.models.ingredient import Ingredient, normalize_ingredient_name
from src.schemas.recipe import CandidateIngredient
from src.services.exceptions import ReconciliationError
from src.services.ingredient_reconciler import (
    IngredientReconciler,
    find_ingredient,
    find_or_create_ingredient,
    is_unique_violation,
)


def failing_commits(session_factory, name, error):
    """Session factory whose commits raise error while an ingredient called name is pending."""

    def factory():
        session = session_factory()
        commit = session.commit

        def commit_or_fail():
            if any(getattr(obj, "name", None) == name for obj in session.new):
                raise error
            commit()

        session.commit = commit_or_fail
        return session

    return factory


def test_normalize_ingredient_name():
    """Test names are lowercased with whitespace collapsed."""
    assert normalize_ingredient_name("  Brown   Sugar ") == "brown sugar"


def test_find_or_create_creates_once(db):
    """Test a second call with different casing reuses the row."""
    first = find_or_create_ingredient(db, "Flour")
    second = find_or_create_ingredient(db, "  FLOUR ")

    assert first.id == second.id
    assert second.name == "Flour"
    assert db.query(Ingredient).count() == 1


def test_find_or_create_keeps_display_name(db):
    """Test the first spelling is kept as the display name."""
    ingredient = find_or_create_ingredient(db, "Extra  Virgin Olive Oil")
    assert ingredient.name == "Extra Virgin Olive Oil"
    assert ingredient.normalized_name == "extra virgin olive oil"


def test_find_or_create_blank_name(db):
    """Test a blank name cannot be reconciled."""
    with pytest.raises(ReconciliationError) as exc_info:
        find_or_create_ingredient(db, "   ")
    assert exc_info.value.name == "   "


def test_find_or_create_other_integrity_error(db):
    """Test an integrity failure that is not a name conflict is not treated as one."""
    orig = sqlite3.IntegrityError("NOT NULL constraint failed: ingredients.name")
    db.commit = MagicMock(side_effect=IntegrityError("INSERT", {}, orig))

    with pytest.raises(ReconciliationError) as exc_info:
        find_or_create_ingredient(db, "Cumin")

    assert exc_info.value.name == "Cumin"
    assert "NOT NULL constraint failed" in str(exc_info.value)
    del db.commit
    assert db.query(Ingredient).count() == 0


def test_find_or_create_database_error(db):
    """Test a database error on insert becomes a reconciliation error."""
    orig = sqlite3.OperationalError("database is locked")
    db.commit = MagicMock(side_effect=OperationalError("INSERT", {}, orig))

    with pytest.raises(ReconciliationError) as exc_info:
        find_or_create_ingredient(db, "Cumin")

    assert "database is locked" in str(exc_info.value)
    del db.commit
    assert db.query(Ingredient).count() == 0


def test_find_ingredient_missing(db):
    """Test lookup of an unknown name."""
    assert find_ingredient(db, "Saffron") is None


class TestIsUniqueViolation:
    """Tests for classifying integrity errors."""

    def test_sqlite_unique(self):
        orig = sqlite3.IntegrityError("UNIQUE constraint failed: ingredients.normalized_name")
        assert is_unique_violation(IntegrityError("INSERT", {}, orig))

    def test_sqlite_not_null(self):
        orig = sqlite3.IntegrityError("NOT NULL constraint failed: ingredients.name")
        assert not is_unique_violation(IntegrityError("INSERT", {}, orig))

    def test_postgres_unique(self):
        orig = SimpleNamespace(pgcode="23505")
        assert is_unique_violation(IntegrityError("INSERT", {}, orig))

    def test_postgres_foreign_key(self):
        orig = SimpleNamespace(pgcode="23503")
        assert not is_unique_violation(IntegrityError("INSERT", {}, orig))


class TestIngredientReconciler:
    """Tests for batch reconciliation."""

    @pytest.mark.asyncio
    async def test_reconcile_batch(self, db, session_factory):
        reconciler = IngredientReconciler(session_factory)
        result = await reconciler.reconcile(
            [
                CandidateIngredient(name="Flour", quantity=200, unit="g"),
                CandidateIngredient(name="Eggs", quantity=2),
            ]
        )

        assert result.dropped_count == 0
        assert [r.name for r in result.resolved] == ["Flour", "Eggs"]
        assert result.resolved[0].quantity == 200
        assert result.resolved[0].unit == "g"
        assert db.query(Ingredient).count() == 2

    @pytest.mark.asyncio
    async def test_concurrent_same_name_creates_one_row(self, db, session_factory):
        reconciler = IngredientReconciler(session_factory)
        result = await reconciler.reconcile(
            [CandidateIngredient(name=name) for name in ["Butter", "butter", " BUTTER ", "Butter"]]
        )

        assert result.dropped_count == 0
        assert len({r.ingredient_id for r in result.resolved}) == 1
        assert db.query(Ingredient).count() == 1

    @pytest.mark.asyncio
    async def test_existing_ingredient_reused(self, db, session_factory):
        existing = Ingredient(name="Sugar", normalized_name="sugar")
        db.add(existing)
        db.commit()

        reconciler = IngredientReconciler(session_factory)
        resolved = await reconciler.resolve(CandidateIngredient(name="SUGAR"))

        assert resolved.ingredient_id == existing.id
        assert resolved.name == "Sugar"

    @pytest.mark.asyncio
    async def test_one_failure_does_not_drop_others(self, db, session_factory):
        reconciler = IngredientReconciler(session_factory)
        result = await reconciler.reconcile(
            [
                CandidateIngredient(name="Flour"),
                CandidateIngredient(name="   "),
                CandidateIngredient(name="Milk"),
            ]
        )

        assert [r.name for r in result.resolved] == ["Flour", "Milk"]
        assert result.dropped_count == 1
        assert result.dropped_names == ["   "]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            IntegrityError(
                "INSERT", {}, sqlite3.IntegrityError("NOT NULL constraint failed: ingredients.name")
            ),
            OperationalError("INSERT", {}, sqlite3.OperationalError("database is locked")),
        ],
        ids=["integrity", "operational"],
    )
    async def test_database_failure_drops_only_that_ingredient(self, db, session_factory, error):
        reconciler = IngredientReconciler(failing_commits(session_factory, "Cumin", error))
        result = await reconciler.reconcile(
            [
                CandidateIngredient(name="Flour"),
                CandidateIngredient(name="Cumin"),
                CandidateIngredient(name="Milk"),
            ]
        )

        assert [r.name for r in result.resolved] == ["Flour", "Milk"]
        assert result.dropped_names == ["Cumin"]
        assert {i.name for i in db.query(Ingredient)} == {"Flour", "Milk"}

    @pytest.mark.asyncio
    async def test_empty_batch(self, session_factory):
        result = await IngredientReconciler(session_factory).reconcile([])
        assert result.resolved == []
        assert result.failures == []

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self):
        def broken_factory():
            raise RuntimeError("database unavailable")

        reconciler = IngredientReconciler(broken_factory)
        with pytest.raises(RuntimeError):
            await reconciler.reconcile([CandidateIngredient(name="Flour")])
