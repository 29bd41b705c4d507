"""
SQLAlchemy ORM models for the entities involved in authentication.

Uses SQLAlchemy 2.0 declarative syntax with async compatibility. Column
types are kept portable so the same metadata works on PostgreSQL (asyncpg)
and SQLite (aiosqlite, used by the test suite).
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, Boolean, DateTime, Integer, ForeignKey, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class Ngo(Base):
    """
    Non-governmental organization.

    Every observer and NGO admin belongs to one NGO. Inactive NGOs cannot
    log in. The organizer NGO administers the whole platform.
    """
    __tablename__ = "ngos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    short_name: Mapped[str] = mapped_column(String(10), nullable=False)
    organizer: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    observers: Mapped[List["Observer"]] = relationship(back_populates="ngo")
    admins: Mapped[List["NgoAdmin"]] = relationship(back_populates="ngo")

    def __repr__(self) -> str:
        return f"<Ngo(id={self.id}, short_name='{self.short_name}')>"


class NgoAdmin(Base):
    """NGO administrator account (web dashboard user)."""
    __tablename__ = "ngo_admins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    id_ngo: Mapped[int] = mapped_column(ForeignKey("ngos.id"), nullable=False)
    account: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    password: Mapped[str] = mapped_column(String(100), nullable=False)

    ngo: Mapped[Ngo] = relationship(back_populates="admins", lazy="joined")

    def __repr__(self) -> str:
        return f"<NgoAdmin(id={self.id}, account='{self.account}')>"


class Observer(Base):
    """
    Field observer (poll-watcher).

    Identified by phone number; authenticates with a PIN stored through the
    configured hash service. With device locking enabled, the first device
    that logs in is recorded in mobile_device_id.
    """
    __tablename__ = "observers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    pin: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    id_ngo: Mapped[int] = mapped_column(ForeignKey("ngos.id"), nullable=False, default=1)
    from_team: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    mobile_device_id: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    device_register_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    ngo: Mapped[Ngo] = relationship(back_populates="observers", lazy="joined")

    __table_args__ = (
        Index("idx_observers_phone", "phone"),
    )

    def __repr__(self) -> str:
        return f"<Observer(id={self.id}, phone='{self.phone}')>"
