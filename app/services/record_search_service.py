"""
Order-number search across the remote database's tables.

Which tables and fields are searched is static configuration (table name ->
field names). Filters are built from the cached schema, one search call is
made per table concurrently, and raw field values are resolved for display.
"""

import asyncio
import math
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

import structlog
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import FieldSchema, FieldType, TableSchema
from app.services.table_api_service import TableApiClient
from app.services.table_sync_service import get_cached_tables

logger = structlog.stdlib.get_logger(__name__)

NUMERIC_FIELD_TYPES = frozenset({FieldType.NUMBER.value, FieldType.FORMULA.value})
DEFAULT_ATTACHMENT_FILENAME = "Download"
# Decimal or exponent notation only, without digit separators
NUMERIC_QUERY_RE = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


class Attachment(BaseModel):
    url: Any
    filename: str


class SearchRecord(BaseModel):
    id: str
    fields: dict[str, Any]


class SearchResultGroup(BaseModel):
    tableId: str
    tableName: str
    records: list[SearchRecord]
    total: int


#### Field values ####


@dataclass(frozen=True)
class ScalarValue:
    value: Any

    def display(self) -> Any:
        return self.value


@dataclass(frozen=True)
class ReferenceValue:
    """SELECT / linked-record value: {"id": ..., "label": ...}"""

    label: Any

    def display(self) -> Any:
        return self.label


@dataclass(frozen=True)
class AttachmentValue:
    items: tuple[Attachment, ...]

    def display(self) -> list[dict[str, Any]]:
        return [item.model_dump() for item in self.items]


FieldValue = Union[ScalarValue, ReferenceValue, AttachmentValue]


def classify_field_value(value: Any) -> FieldValue:
    if isinstance(value, dict) and value.get("label") is not None:
        return ReferenceValue(label=value["label"])
    if (
        isinstance(value, list)
        and value
        and isinstance(value[0], dict)
        and value[0].get("url")
    ):
        return AttachmentValue(
            items=tuple(
                Attachment(
                    url=item.get("url"),
                    filename=item.get("filename") or DEFAULT_ATTACHMENT_FILENAME,
                )
                for item in value
                if isinstance(item, dict)
            )
        )
    return ScalarValue(value=value)


def resolve_field_value(value: Any) -> Any:
    """Normalize a raw field value for display."""
    return classify_field_value(value).display()


#### Filters ####


def coerce_numeric_query(query: str) -> Optional[Union[int, float]]:
    """
    Numeric form of the query for NUMBER/FORMULA fields.

    A query that is not a number yields None, which is sent as-is; how the
    remote treats that filter is up to the remote.
    """
    query = query.strip()
    if not NUMERIC_QUERY_RE.fullmatch(query):
        return None
    number = float(query)
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def build_table_condition(
    fields: list[FieldSchema], query: str
) -> Optional[dict[str, Any]]:
    """One IS condition per field, OR-ed together when there is more than one."""
    conditions = [
        {
            "leftSide": field.id,
            "operator": "IS",
            "rightSide": coerce_numeric_query(query)
            if field.type in NUMERIC_FIELD_TYPES
            else query,
        }
        for field in fields
    ]
    if not conditions:
        return None
    if len(conditions) == 1:
        return conditions[0]
    return {"operator": "OR", "conditions": conditions}


class RecordSearchEngine:
    def __init__(
        self,
        client: TableApiClient,
        session_factory: async_sessionmaker[AsyncSession],
        search_fields: dict[str, list[str]],
        limit: int = 10,
    ):
        self.client = client
        self.session_factory = session_factory
        self.search_fields = search_fields
        self.limit = limit

    async def search(
        self, query: Optional[str], limit: Optional[int] = None
    ) -> list[SearchResultGroup]:
        """
        Search every configured table for records matching `query`.

        Tables whose search fails are logged and left out, as are tables
        without matches. Never syncs the schema cache; an empty cache means
        an empty result.
        """
        query = (query or "").strip()
        if not query:
            return []

        async with self.session_factory() as session:
            tables = await get_cached_tables(session)
        if not tables:
            return []

        searchable = [table for table in tables if table.name in self.search_fields]
        results = await asyncio.gather(
            *(
                self._search_table(table, query, limit or self.limit)
                for table in searchable
            ),
            return_exceptions=True,
        )

        groups = []
        for table, result in zip(searchable, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Record search failed for table",
                    table_id=table.id,
                    table_name=table.name,
                    error=str(result),
                )
                continue
            if result is not None and result.records:
                groups.append(result)
        return groups

    async def _search_table(
        self, table: TableSchema, query: str, limit: int
    ) -> Optional[SearchResultGroup]:
        field_names = self.search_fields[table.name]
        fields = [field for field in table.fields if field.name in field_names]
        condition = build_table_condition(fields, query)
        if condition is None:
            return None

        logger.debug(
            "Searching table records", table_name=table.name, condition=condition
        )
        result = await self.client.search_records(
            table.id, condition, offset=0, limit=limit
        )

        names_by_id = {field.id: field.name for field in table.fields}
        records = [
            SearchRecord(
                id=str(record.get("id")),
                fields={
                    names_by_id.get(field_id, field_id): resolve_field_value(value)
                    for field_id, value in (record.get("fields") or {}).items()
                },
            )
            for record in result.get("data") or []
        ]
        total = (result.get("metadata") or {}).get("total")

        logger.debug(
            "Table search complete",
            table_name=table.name,
            records=len(records),
            total=total,
        )
        return SearchResultGroup(
            tableId=table.id,
            tableName=table.name,
            records=records,
            total=total if total is not None else len(records),
        )
