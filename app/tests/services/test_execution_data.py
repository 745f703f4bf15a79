import pytest

from app.services.execution_data import (
    build_execution_detail,
    extract_custom_value,
    extract_execution_id,
    extract_node_timeline,
)


def _run(start_time=None, items=None, error=None, execution_time=5):
    run = {
        "startTime": start_time,
        "executionTime": execution_time,
        "data": {"main": [[{"json": item} for item in (items or [])]]},
    }
    if error:
        run["error"] = {"message": error}
    return run


def _document(nodes, run_data, **extra):
    return {
        "id": "42",
        "status": "success",
        "workflowData": {"nodes": nodes},
        "data": {"resultData": {"runData": run_data}},
        **extra,
    }


class TestNodeTimeline:
    def test_orders_ran_nodes_by_start_time(self):
        document = _document(
            nodes=[
                {"name": "Late", "type": "n8n-nodes-base.set"},
                {"name": "Skipped", "type": "n8n-nodes-base.if"},
                {"name": "Early", "type": "n8n-nodes-base.webhook"},
            ],
            run_data={
                "Late": [_run(start_time=300)],
                "Early": [_run(start_time=100)],
            },
        )

        timeline = extract_node_timeline(document)

        assert [node.name for node in timeline] == ["Early", "Late"]
        assert [node.startTime for node in timeline] == [100, 300]
        assert all(node.ran for node in timeline)

    def test_missing_start_time_sorts_first(self):
        document = _document(
            nodes=[{"name": "B"}, {"name": "A"}],
            run_data={"B": [_run(start_time=50)], "A": [_run(start_time=None)]},
        )

        timeline = extract_node_timeline(document)

        assert [node.name for node in timeline] == ["A", "B"]
        assert timeline[0].startTime is None

    def test_summarizes_last_run(self):
        document = _document(
            nodes=[{"name": "HTTP", "type": "n8n-nodes-base.httpRequest"}],
            run_data={
                "HTTP": [
                    _run(start_time=10, error="first attempt failed"),
                    _run(start_time=20, items=[{"ok": True}], execution_time=7),
                ]
            },
        )

        [node] = extract_node_timeline(document)

        assert node.type == "httpRequest"
        assert node.startTime == 20
        assert node.executionTime == 7
        assert node.error is None
        assert node.output == {"ok": True}

    def test_output_shapes(self):
        document = _document(
            nodes=[{"name": "Many"}, {"name": "None"}, {"name": "Failed"}],
            run_data={
                "Many": [_run(start_time=1, items=[{"a": 1}, {"a": 2}])],
                "None": [_run(start_time=2)],
                "Failed": [_run(start_time=3, error="Boom")],
            },
        )

        many, none, failed = extract_node_timeline(document)

        assert many.output == [{"a": 1}, {"a": 2}]
        assert none.output is None
        assert failed.error == "Boom"

    @pytest.mark.parametrize(
        "document",
        [None, "text", {}, {"workflowData": {"nodes": "x"}}, {"data": []}],
    )
    def test_malformed_document_gives_empty_timeline(self, document):
        assert extract_node_timeline(document) == []


class TestCustomValue:
    def test_prefers_custom_data(self):
        document = _document(
            nodes=[],
            run_data={"Webhook": [_run(items=[{"orderNumber": "from-run"}])]},
            customData={"orderNumber": "from-custom"},
            annotation={"customData": {"orderNumber": "from-annotation"}},
        )

        assert extract_custom_value(document, "orderNumber") == "from-custom"

    def test_falls_back_to_annotation(self):
        document = _document(
            nodes=[],
            run_data={"Webhook": [_run(items=[{"orderNumber": "from-run"}])]},
            annotation={"customData": {"orderNumber": "from-annotation"}},
        )

        assert extract_custom_value(document, "orderNumber") == "from-annotation"

    def test_scans_run_outputs(self):
        document = _document(
            nodes=[],
            run_data={
                "Webhook": [_run(items=[{"other": 1}])],
                "Set": [_run(items=[{"other": 2}, {"orderNumber": 1001}])],
            },
        )

        assert extract_custom_value(document, "orderNumber") == 1001

    def test_absent_key(self):
        document = _document(nodes=[], run_data={"Webhook": [_run(items=[{}])]})

        assert extract_custom_value(document, "orderNumber") is None

    @pytest.mark.parametrize(
        "document",
        [
            None,
            ["not", "a", "dict"],
            {"data": {"resultData": {"runData": {"Webhook": "broken"}}}},
            {"data": {"resultData": {"runData": {"Webhook": [None, 3]}}}},
        ],
    )
    def test_never_raises_on_malformed_document(self, document):
        assert extract_custom_value(document, "orderNumber") is None


class TestExecutionId:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://n8n.example.com/workflow/abc123/executions/12345", "12345"),
            ("https://n8n.example.com/execution/678", "678"),
            ("https://n8n.example.com/workflow/abc/executions/99?tab=1", "99"),
            ("https://n8n.example.com/some/path/777", "777"),
            ("https://n8n.example.com/", None),
            ("not a url", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract_execution_id(self, url, expected):
        assert extract_execution_id(url) == expected


def test_build_execution_detail():
    document = _document(
        nodes=[{"name": "Webhook", "type": "n8n-nodes-base.webhook"}],
        run_data={"Webhook": [_run(start_time=1, items=[{"orderNumber": "X"}])]},
        startedAt="2025-01-01T10:00:00.000Z",
        stoppedAt=None,
        mode="webhook",
    )

    detail = build_execution_detail(document)

    assert detail["execution"] == {
        "id": "42",
        "status": "success",
        "startedAt": "2025-01-01T10:00:00.000Z",
        "stoppedAt": None,
        "mode": "webhook",
    }
    assert detail["nodes"][0]["name"] == "Webhook"
    assert detail["nodes"][0]["output"] == {"orderNumber": "X"}
