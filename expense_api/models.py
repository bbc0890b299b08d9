"""SQLAlchemy models for the expense tracking API."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from .database import Base


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)
    name: str = Column(String(255), nullable=False)

    # Deleting a user leaves its expenses in place.
    expenses = relationship("Expense", back_populates="user", passive_deletes="all")


class Expense(Base):
    __tablename__ = "expenses"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    spent_at: datetime = Column(DateTime, nullable=False, index=True)
    title: str = Column(String(255), nullable=False)
    amount: Decimal = Column(Numeric(12, 2), nullable=False)
    # Free-form label matched against category names, not a foreign key.
    category: Optional[str] = Column(String(100), nullable=True, index=True)
    note: Optional[str] = Column(Text, nullable=True)

    user = relationship("User", back_populates="expenses")


class Category(Base):
    __tablename__ = "categories"

    id: int = Column(Integer, primary_key=True, index=True)
    name: str = Column(String(100), nullable=False, index=True)
