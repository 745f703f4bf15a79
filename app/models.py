from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.orm.exc import DetachedInstanceError
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    def __repr__(self) -> str:
        return self._repr(id=self.id)

    def _repr(self, **fields: dict[str, Any]) -> str:
        """
        Helper for __repr__
        """
        field_strings = []
        at_least_one_attached_attribute = False
        for key, field in fields.items():
            try:
                field_strings.append(f"{key}={field!r}")
            except DetachedInstanceError:
                field_strings.append(f"{key}=DetachedInstanceError")
            else:
                at_least_one_attached_attribute = True
        if at_least_one_attached_attribute:
            return f"<{self.__class__.__name__}({','.join(field_strings)})>"
        return f"<{self.__class__.__name__} {id(self)}>"


class ExecutionStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    CANCELED = "canceled"
    WAITING = "waiting"
    RUNNING = "running"


class FieldType(str, Enum):
    TEXT = "TEXT"
    LONG_TEXT = "LONG_TEXT"
    NUMBER = "NUMBER"
    FORMULA = "FORMULA"
    SELECT = "SELECT"
    ATTACHMENT = "ATTACHMENT"
    CHECKBOX = "CHECKBOX"
    DATETIME = "DATETIME"
    EMAIL = "EMAIL"
    URL = "URL"
    LINKED_RECORD = "LINKED_RECORD"


class ExecutionRecord(Base):
    """Local index row for one remote workflow execution."""

    __tablename__ = "execution_records"

    execution_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    order_number: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    workflow_id: Mapped[str] = mapped_column(String(255), nullable=False)
    # Kept as text: the remote may report statuses outside ExecutionStatus
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    stopped_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    mode: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_execution_records_order_number", "order_number"),
        Index("idx_execution_records_started_at", "started_at"),
    )

    def __repr__(self) -> str:
        return self._repr(
            execution_id=self.execution_id,
            order_number=self.order_number,
            status=self.status,
        )


class TableSchema(Base):
    __tablename__ = "table_schemas"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    primary_field_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    default_view_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    synced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    fields: Mapped[list["FieldSchema"]] = relationship(
        back_populates="table",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class FieldSchema(Base):
    __tablename__ = "field_schemas"

    # Field ids are only unique within their table
    table_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("table_schemas.id", ondelete="CASCADE"),
        primary_key=True,
    )
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    readonly: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allow_multiple_entries: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    default_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Serialized JSON, interpreted by the caller according to `type`
    options: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    table: Mapped["TableSchema"] = relationship(back_populates="fields")

    __table_args__ = (Index("idx_field_schemas_table", "table_id"),)
