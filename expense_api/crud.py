"""CRUD helper functions for the expense tracking API."""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import ColumnElement, select
from sqlalchemy.orm import Session

from . import models, schemas


class EntityNotFoundError(RuntimeError):
    """Raised when an entity cannot be located in the database."""


class InvalidReferenceError(RuntimeError):
    """Raised when a write references a user that does not exist."""


def list_users(session: Session) -> List[models.User]:
    stmt = select(models.User).order_by(models.User.id)
    return list(session.scalars(stmt))


def get_user(session: Session, user_id: int) -> models.User:
    user = session.get(models.User, user_id)
    if user is None:
        raise EntityNotFoundError(f"User {user_id} not found")
    return user


def create_user(session: Session, user_in: schemas.UserCreate) -> models.User:
    user = models.User(name=user_in.name)
    session.add(user)
    session.flush()
    session.refresh(user)
    return user


def update_user(session: Session, user_id: int, update_in: schemas.UserUpdate) -> models.User:
    user = get_user(session, user_id)
    for field, value in update_in.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    session.flush()
    session.refresh(user)
    return user


def delete_user(session: Session, user_id: int) -> None:
    user = get_user(session, user_id)
    session.delete(user)
    session.flush()


def list_categories(session: Session) -> List[models.Category]:
    stmt = select(models.Category).order_by(models.Category.id)
    return list(session.scalars(stmt))


def get_category(session: Session, category_id: int) -> models.Category:
    category = session.get(models.Category, category_id)
    if category is None:
        raise EntityNotFoundError(f"Category {category_id} not found")
    return category


def create_category(session: Session, category_in: schemas.CategoryCreate) -> models.Category:
    category = models.Category(name=category_in.name)
    session.add(category)
    session.flush()
    session.refresh(category)
    return category


def update_category(
    session: Session, category_id: int, update_in: schemas.CategoryUpdate
) -> models.Category:
    category = get_category(session, category_id)
    for field, value in update_in.model_dump(exclude_unset=True).items():
        setattr(category, field, value)
    session.flush()
    session.refresh(category)
    return category


def delete_category(session: Session, category_id: int) -> None:
    category = get_category(session, category_id)
    session.delete(category)
    session.flush()


def expense_filters(query: schemas.ExpenseQuery) -> List[ColumnElement[bool]]:
    """Translate list filters into predicates; absent filters add nothing."""

    column = models.Expense
    predicates: List[ColumnElement[bool]] = []
    if query.user_id is not None:
        predicates.append(column.user_id == query.user_id)
    if query.spent_from is not None:
        predicates.append(column.spent_at >= query.spent_from)
    if query.spent_to is not None:
        predicates.append(column.spent_at <= query.spent_to)
    if query.categories:
        predicates.append(column.category.in_(query.categories))
    return predicates


def list_expenses(session: Session, query: Optional[schemas.ExpenseQuery] = None) -> List[models.Expense]:
    stmt = select(models.Expense).order_by(models.Expense.id)
    if query is not None:
        stmt = stmt.where(*expense_filters(query))
    return list(session.scalars(stmt))


def get_expense(session: Session, expense_id: int) -> models.Expense:
    expense = session.get(models.Expense, expense_id)
    if expense is None:
        raise EntityNotFoundError(f"Expense {expense_id} not found")
    return expense


def _ensure_user_exists(session: Session, user_id: int) -> None:
    if session.get(models.User, user_id) is None:
        raise InvalidReferenceError(f"User {user_id} does not exist")


def create_expense(session: Session, expense_in: schemas.ExpenseCreate) -> models.Expense:
    _ensure_user_exists(session, expense_in.user_id)
    expense = models.Expense(**expense_in.model_dump())
    session.add(expense)
    session.flush()
    session.refresh(expense)
    return expense


def update_expense(session: Session, expense_id: int, update_in: schemas.ExpenseUpdate) -> models.Expense:
    changes = update_in.model_dump(exclude_unset=True)
    expense = get_expense(session, expense_id)
    if "user_id" in changes:
        _ensure_user_exists(session, changes["user_id"])
    for field, value in changes.items():
        setattr(expense, field, value)
    session.flush()
    session.refresh(expense)
    return expense


def delete_expense(session: Session, expense_id: int) -> None:
    expense = get_expense(session, expense_id)
    session.delete(expense)
    session.flush()
