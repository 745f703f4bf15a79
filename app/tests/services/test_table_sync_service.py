from sqlalchemy import delete, func, select

from app.exceptions import RemoteApiError
from app.models import FieldSchema, TableSchema
from app.services.table_sync_service import (
    get_cached_tables,
    has_cached_data,
    serialize_table,
)
from app.tests.fixtures_clients import make_field, make_table


def _three_tables():
    return [
        make_table("t1", "Orders", [make_field("f1", "Order number", "NUMBER")]),
        make_table(
            "t2",
            "Samples",
            [
                make_field("f2", "orderNumber"),
                make_field(
                    "f3",
                    "Colour",
                    "SELECT",
                    options={"choices": [{"id": "c1", "label": "Blue"}]},
                    defaultValue=3,
                    createdAt="2024-05-01T08:00:00Z",
                ),
            ],
        ),
        make_table("t3", "Archive", []),
    ]


async def _field_count(session_factory) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(FieldSchema))
        return result.scalar_one()


class TestTableSync:
    async def test_sync_caches_tables_and_fields(
        self, table_api, table_sync_engine, session_factory
    ):
        table_api.tables = {table["id"]: table for table in _three_tables()}

        count = await table_sync_engine.sync()

        assert count == 3
        async with session_factory() as session:
            tables = await get_cached_tables(session)
        assert [table.name for table in tables] == ["Archive", "Orders", "Samples"]
        samples = serialize_table(tables[2])
        assert samples["primaryFieldId"] == "f2"
        colour = next(field for field in samples["fields"] if field["id"] == "f3")
        assert colour["options"] == {"choices": [{"id": "c1", "label": "Blue"}]}
        assert colour["defaultValue"] == "3"
        assert colour["createdAt"].startswith("2024-05-01T08:00:00")
        assert await _field_count(session_factory) == 3

    async def test_sync_replaces_previous_cache(
        self, table_api, table_sync_engine, session_factory
    ):
        table_api.tables = {table["id"]: table for table in _three_tables()}
        await table_sync_engine.sync()

        table_api.tables = {
            "t9": make_table("t9", "Orders v2", [make_field("f9", "Order number")])
        }
        count = await table_sync_engine.sync()

        assert count == 1
        async with session_factory() as session:
            tables = await get_cached_tables(session)
        assert [table.id for table in tables] == ["t9"]
        assert [field.id for field in tables[0].fields] == ["f9"]
        assert await _field_count(session_factory) == 1

    async def test_failed_detail_fetch_keeps_previous_cache(
        self, table_api, table_sync_engine, session_factory
    ):
        table_api.tables = {table["id"]: table for table in _three_tables()}
        await table_sync_engine.sync()

        table_api.tables = {
            "n1": make_table("n1", "New 1", []),
            "n2": make_table("n2", "New 2", []),
            "n3": RemoteApiError("table", 500, "Internal error"),
        }
        count = await table_sync_engine.sync()

        assert count is None
        async with session_factory() as session:
            tables = await get_cached_tables(session)
        assert sorted(table.id for table in tables) == ["t1", "t2", "t3"]
        assert await _field_count(session_factory) == 3

    async def test_failed_write_keeps_previous_cache(
        self, table_api, table_sync_engine, session_factory
    ):
        table_api.tables = {table["id"]: table for table in _three_tables()}
        await table_sync_engine.sync()

        # Fetching succeeds; the insert fails after the old rows were deleted
        table_api.tables = {
            "n1": make_table("n1", "New 1", [make_field("f1", "Order number")]),
            "n2": make_table(
                "n2",
                "New 2",
                [make_field("dup", "Reference"), make_field("dup", "Reference")],
            ),
        }
        count = await table_sync_engine.sync()

        assert count is None
        async with session_factory() as session:
            tables = await get_cached_tables(session)
        assert sorted(table.id for table in tables) == ["t1", "t2", "t3"]
        assert sorted(field.id for table in tables for field in table.fields) == [
            "f1",
            "f2",
            "f3",
        ]
        assert await _field_count(session_factory) == 3

    async def test_field_ids_may_repeat_across_tables(
        self, table_api, table_sync_engine, session_factory
    ):
        table_api.tables = {
            "a": make_table("a", "Orders", [make_field("order", "Order number")]),
            "b": make_table("b", "Samples", [make_field("order", "orderNumber")]),
        }

        assert await table_sync_engine.sync() == 2
        async with session_factory() as session:
            tables = await get_cached_tables(session)
        assert [(table.id, [f.name for f in table.fields]) for table in tables] == [
            ("a", ["Order number"]),
            ("b", ["orderNumber"]),
        ]

    async def test_failed_listing_keeps_previous_cache(
        self, table_api, table_sync_engine, session_factory
    ):
        table_api.tables = {table["id"]: table for table in _three_tables()}
        await table_sync_engine.sync()

        table_api.fail_listing = RemoteApiError("table", 401, "Unauthorized")
        assert await table_sync_engine.sync() is None

        async with session_factory() as session:
            assert len(await get_cached_tables(session)) == 3

    async def test_missing_details_are_skipped(
        self, table_api, table_sync_engine, session_factory
    ):
        table_api.tables = {
            "t1": make_table("t1", "Orders", []),
            "gone": None,
        }

        assert await table_sync_engine.sync() == 1
        async with session_factory() as session:
            assert [t.id for t in await get_cached_tables(session)] == ["t1"]

    async def test_empty_remote_empties_cache(
        self, table_api, table_sync_engine, session_factory
    ):
        table_api.tables = {table["id"]: table for table in _three_tables()}
        await table_sync_engine.sync()

        table_api.tables = {}
        assert await table_sync_engine.sync() == 0

        async with session_factory() as session:
            assert await has_cached_data(session) is False


async def test_has_cached_data(session):
    assert await has_cached_data(session) is False

    session.add(TableSchema(id="t1", name="Orders"))
    await session.commit()

    assert await has_cached_data(session) is True


class TestTableCascade:
    async def test_deleting_table_rows_removes_their_fields(
        self, table_api, table_sync_engine, session_factory
    ):
        table_api.tables = {table["id"]: table for table in _three_tables()}
        await table_sync_engine.sync()

        async with session_factory.begin() as session:
            await session.execute(delete(TableSchema).where(TableSchema.id == "t2"))

        assert await _field_count(session_factory) == 1

        async with session_factory.begin() as session:
            await session.execute(delete(TableSchema))

        assert await _field_count(session_factory) == 0

    async def test_deleting_loaded_table_removes_its_fields(
        self, table_api, table_sync_engine, session_factory
    ):
        table_api.tables = {table["id"]: table for table in _three_tables()}
        await table_sync_engine.sync()

        async with session_factory.begin() as session:
            tables = await get_cached_tables(session)
            samples = next(table for table in tables if table.id == "t2")
            await session.delete(samples)

        async with session_factory() as session:
            result = await session.execute(select(FieldSchema.table_id))
            assert sorted(result.scalars().all()) == ["t1"]
