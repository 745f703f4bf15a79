"""Tests for the execution and order-workflow API endpoints."""

from app.exceptions import RemoteApiError
from app.services.execution_record_service import upsert_executions
from app.tests.fixtures_clients import make_execution


async def _seed(session_factory, *executions):
    async with session_factory() as session:
        await upsert_executions(session, list(executions), "orderNumber")
        await session.commit()


def _route_call(execution_api) -> dict:
    # The listing also starts a background sync, which pages with limit=2
    return next(call for call in execution_api.page_calls if call["limit"] == 10)


def _document(execution_id: str, status: str = "success") -> dict:
    return {
        **make_execution(execution_id, status=status),
        "workflowData": {
            "nodes": [
                {"name": "Webhook", "type": "n8n-nodes-base.webhook"},
                {"name": "Unused", "type": "n8n-nodes-base.noOp"},
                {"name": "Set", "type": "n8n-nodes-base.set"},
            ]
        },
        "data": {
            "resultData": {
                "runData": {
                    "Set": [{"startTime": 200, "data": {"main": [[{"json": {"a": 1}}]]}}],
                    "Webhook": [{"startTime": 100, "data": {"main": [[]]}}],
                }
            }
        },
    }


async def test_health(client):
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


class TestListExecutions:
    async def test_returns_page_with_order_numbers(self, client, execution_api):
        execution_api.pages = {
            None: {
                "data": [make_execution("2", order_number="ORD-2"), make_execution("1")],
                "nextCursor": "next",
            },
            "next": {"data": [], "nextCursor": None},
        }
        execution_api.workflows = [{"id": "wf-1", "name": "Orders"}]

        response = await client.get("/api/executions")

        assert response.status_code == 200
        data = response.json()
        assert [e["id"] for e in data["executions"]] == ["2", "1"]
        assert data["executions"][0]["orderNumber"] == "ORD-2"
        assert data["executions"][1]["orderNumber"] is None
        assert data["nextCursor"] == "next"
        assert data["workflows"] == [{"id": "wf-1", "name": "Orders"}]
        assert data["error"] is None

        page_call = _route_call(execution_api)
        assert page_call["limit"] == 10
        assert page_call["include_data"] is True

    async def test_passes_filters(self, client, execution_api):
        execution_api.pages = {"c1": {"data": [], "nextCursor": None}}

        response = await client.get(
            "/api/executions",
            params={"status": "error", "workflowId": "wf-9", "cursor": "c1"},
        )

        assert response.status_code == 200
        assert response.json()["filters"] == {"status": "error", "workflowId": "wf-9"}
        page_call = _route_call(execution_api)
        assert page_call["status"] == "error"
        assert page_call["workflow_id"] == "wf-9"
        assert page_call["cursor"] == "c1"

    async def test_invalid_status_is_rejected(self, client):
        response = await client.get("/api/executions", params={"status": "bogus"})

        assert response.status_code == 400
        assert response.json()["title"] == "Validation error"

    async def test_workflow_failure_degrades_to_empty_list(self, client, execution_api):
        execution_api.workflows = RemoteApiError("execution", 500, "boom")

        response = await client.get("/api/executions")

        assert response.status_code == 200
        assert response.json()["workflows"] == []

    async def test_remote_failure_is_reported(self, client, execution_api):
        execution_api.pages = {None: RemoteApiError("execution", 401, "Unauthorized")}

        response = await client.get("/api/executions")

        assert response.status_code == 200
        data = response.json()
        assert data["executions"] == []
        assert data["error"] == "execution API error 401: Unauthorized"

    async def test_empty_remote_body_gives_empty_page(self, client, execution_api):
        execution_api.pages = {None: None}

        response = await client.get("/api/executions")

        assert response.status_code == 200
        data = response.json()
        assert data["executions"] == []
        assert data["nextCursor"] is None
        assert data["error"] is None


class TestExecutionsByOrder:
    async def test_most_recent_first(self, client, session_factory):
        await _seed(
            session_factory,
            make_execution("1", order_number="ORD-1", started_at="2025-01-01T08:00:00Z"),
            make_execution("2", order_number="ORD-1", started_at="2025-01-02T08:00:00Z"),
            make_execution("3", order_number="ORD-2"),
        )

        response = await client.get(
            "/api/executions/by-order", params={"orderNumber": "ORD-1"}
        )

        assert response.status_code == 200
        executions = response.json()["executions"]
        assert [e["id"] for e in executions] == ["2", "1"]
        assert executions[0]["orderNumber"] == "ORD-1"
        assert executions[0]["workflowId"] == "wf-1"
        assert executions[0]["startedAt"].startswith("2025-01-02T08:00:00")

    async def test_missing_order_number(self, client):
        response = await client.get("/api/executions/by-order")

        assert response.status_code == 200
        assert response.json() == {"executions": []}


async def test_trigger_sync(client, execution_api, tasks, session_factory):
    execution_api.pages = {
        None: {"data": [make_execution("1", order_number="ORD-1")], "nextCursor": None}
    }

    response = await client.post("/api/executions/sync")
    await tasks.drain()

    assert response.status_code == 202
    assert response.json() == {"status": "accepted"}
    assert [call["cursor"] for call in execution_api.page_calls] == [None]

    by_order = await client.get(
        "/api/executions/by-order", params={"orderNumber": "ORD-1"}
    )
    assert [e["id"] for e in by_order.json()["executions"]] == ["1"]


class TestExecutionNodes:
    async def test_timeline(self, client, execution_api):
        execution_api.executions = {"42": _document("42")}

        response = await client.get("/api/executions/42/nodes")

        assert response.status_code == 200
        nodes = response.json()["nodes"]
        assert [node["name"] for node in nodes] == ["Webhook", "Set"]
        assert nodes[1]["type"] == "set"
        assert nodes[1]["output"] == {"a": 1}

    async def test_remote_failure(self, client):
        response = await client.get("/api/executions/missing/nodes")

        assert response.status_code == 200
        assert response.json() == {
            "nodes": [],
            "error": "execution API error 404: Not Found",
        }


class TestOrderWorkflowDetail:
    async def test_fetches_both_executions(self, client, execution_api):
        execution_api.executions = {
            "10": _document("10"),
            "11": _document("11", status="error"),
        }

        response = await client.get(
            "/api/order-workflow-detail",
            params={
                "workflowUrl": "https://n8n.example.com/workflow/a/executions/10",
                "finisherUrl": "https://n8n.example.com/execution/11",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["workflow"]["execution"]["id"] == "10"
        assert data["finisher"]["execution"]["status"] == "error"
        assert [n["name"] for n in data["workflow"]["nodes"]] == ["Webhook", "Set"]
        assert sorted(execution_api.execution_calls) == ["10", "11"]

    async def test_each_side_degrades_to_null(self, client, execution_api):
        execution_api.executions = {"10": _document("10")}

        response = await client.get(
            "/api/order-workflow-detail",
            params={
                "workflowUrl": "https://n8n.example.com/workflow/a/executions/10",
                "finisherUrl": "https://n8n.example.com/workflow/a/executions/404",
            },
        )

        data = response.json()
        assert data["workflow"]["execution"]["id"] == "10"
        assert data["finisher"] is None

    async def test_without_urls(self, client, execution_api):
        response = await client.get("/api/order-workflow-detail")

        assert response.json() == {"workflow": None, "finisher": None}
        assert execution_api.execution_calls == []

    async def test_retry(self, client, execution_api):
        response = await client.post(
            "/api/order-workflow-detail",
            json={"url": "https://n8n.example.com/workflow/a/executions/10"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "ok": True,
            "result": {"id": "10-retry", "status": "running"},
        }
        assert execution_api.retried == [("10", True)]

    async def test_retry_without_execution_id(self, client, execution_api):
        response = await client.post("/api/order-workflow-detail", json={"url": ""})

        assert response.status_code == 400
        assert execution_api.retried == []
