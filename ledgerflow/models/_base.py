"""Declarative base and shared columns for all models."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

from ledgerflow.core.datetime_utils import utc_now_naive


class Base(DeclarativeBase):
    """Base class for all models: UUID primary key plus audit timestamps."""

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)
    modified_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now_naive, onupdate=utc_now_naive, nullable=False
    )

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return cls.__name__.lower()


class OrganizationBase(Base):
    """Base for rows owned by one organization.

    Organizations are provisioned elsewhere; only their opaque id is kept.
    """

    __abstract__ = True

    organization_id: Mapped[str] = mapped_column(String(255), nullable=False)
