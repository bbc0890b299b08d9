from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from expense_api import crud, schemas


def _make_expense(db_session, user_id: int, spent_at: str, category: str | None = None, amount: str = "10.00"):
    return crud.create_expense(
        db_session,
        schemas.ExpenseCreate(
            user_id=user_id,
            spent_at=spent_at,
            title="Item",
            amount=Decimal(amount),
            category=category,
        ),
    )


def test_create_and_list_users(db_session):
    created = crud.create_user(db_session, schemas.UserCreate(name="Dana"))
    assert created.id is not None

    users = crud.list_users(db_session)
    assert [user.name for user in users] == ["Dana"]


def test_get_missing_user_raises(db_session):
    with pytest.raises(crud.EntityNotFoundError):
        crud.get_user(db_session, 404)


def test_create_expense_requires_existing_user(db_session):
    with pytest.raises(crud.InvalidReferenceError):
        _make_expense(db_session, 999, "2024-03-01T09:00:00")
    assert crud.list_expenses(db_session) == []


def test_create_expense_stores_amount_and_timestamp(db_session):
    user = crud.create_user(db_session, schemas.UserCreate(name="Eve"))
    expense = _make_expense(db_session, user.id, "2024-03-01T09:00:00Z", amount="12.34")
    assert expense.amount == Decimal("12.34")
    assert expense.spent_at == datetime(2024, 3, 1, 9, 0)
    assert expense.category is None


def test_update_expense_applies_only_supplied_fields(db_session):
    user = crud.create_user(db_session, schemas.UserCreate(name="Finn"))
    expense = _make_expense(db_session, user.id, "2024-03-01T09:00:00", category="food")

    updated = crud.update_expense(db_session, expense.id, schemas.ExpenseUpdate(note="split with Gus"))
    assert updated.note == "split with Gus"
    assert updated.category == "food"
    assert updated.title == "Item"
    assert updated.amount == Decimal("10.00")


def test_update_missing_category_raises(db_session):
    with pytest.raises(crud.EntityNotFoundError):
        crud.update_category(db_session, 77, schemas.CategoryUpdate(name="misc"))


def test_expense_filters_omit_absent_predicates():
    assert crud.expense_filters(schemas.ExpenseQuery()) == []
    query = schemas.ExpenseQuery(user_id="3", spent_from="2024-01-01", categories=" food , ,travel")
    assert len(crud.expense_filters(query)) == 3
    assert query.categories == ["food", "travel"]


def test_expense_query_date_bounds_cover_whole_days():
    query = schemas.ExpenseQuery(spent_from="2024-01-01", spent_to="2024-01-31")
    assert query.spent_from == datetime(2024, 1, 1, 0, 0)
    assert query.spent_to == datetime(2024, 1, 31, 23, 59, 59, 999999)


def test_expense_query_blank_values_are_ignored():
    query = schemas.ExpenseQuery(user_id="", spent_from="", spent_to=" ", categories=",")
    assert query.user_id is None
    assert query.spent_from is None and query.spent_to is None
    assert query.categories is None


def test_list_expenses_combines_filters(db_session):
    alice = crud.create_user(db_session, schemas.UserCreate(name="Alice"))
    bob = crud.create_user(db_session, schemas.UserCreate(name="Bob"))
    keep = _make_expense(db_session, alice.id, "2024-05-02T10:00:00", category="food")
    _make_expense(db_session, alice.id, "2024-05-03T10:00:00", category="rent")
    _make_expense(db_session, bob.id, "2024-05-04T10:00:00", category="food")
    _make_expense(db_session, alice.id, "2024-06-01T10:00:00", category="food")

    query = schemas.ExpenseQuery(
        user_id=alice.id,
        spent_from="2024-05-01",
        spent_to="2024-05-31",
        categories="food",
    )
    assert [expense.id for expense in crud.list_expenses(db_session, query)] == [keep.id]
    assert len(crud.list_expenses(db_session)) == 4


def test_delete_user_leaves_expenses(db_session):
    user = crud.create_user(db_session, schemas.UserCreate(name="Hal"))
    expense = _make_expense(db_session, user.id, "2024-03-01T09:00:00")
    crud.delete_user(db_session, user.id)

    with pytest.raises(crud.EntityNotFoundError):
        crud.get_user(db_session, user.id)
    assert crud.get_expense(db_session, expense.id).user_id == user.id


def test_delete_category(db_session):
    category = crud.create_category(db_session, schemas.CategoryCreate(name="Subscriptions"))
    crud.delete_category(db_session, category.id)
    with pytest.raises(crud.EntityNotFoundError):
        crud.get_category(db_session, category.id)
