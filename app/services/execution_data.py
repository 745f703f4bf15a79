"""
Helpers that read a raw execution document returned by the execution API.

An execution document (fetched with includeData=true) looks like:

    {
        "id": "123",
        "status": "success",
        "customData": {...},
        "annotation": {"customData": {...}},
        "workflowData": {"nodes": [{"name": "Webhook", "type": "n8n-nodes-base.webhook"}]},
        "data": {
            "resultData": {
                "runData": {
                    "Webhook": [
                        {
                            "startTime": 1700000000000,
                            "executionTime": 12,
                            "error": {"message": "..."},
                            "data": {"main": [[{"json": {...}}, ...], ...]},
                        }
                    ]
                }
            }
        }
    }

Everything here is pure and never raises on a malformed document.
"""

from typing import Any, Optional, Union
from urllib.parse import urlparse

import structlog
from pydantic import BaseModel

from app.exceptions import DataShapeError

logger = structlog.stdlib.get_logger(__name__)


class NodeRunSummary(BaseModel):
    name: str
    type: Optional[str] = None
    ran: bool
    startTime: Optional[Union[int, float]] = None
    executionTime: Optional[Union[int, float]] = None
    error: Optional[str] = None
    output: Any = None


def _get_dict(container: Any, key: str) -> dict:
    value = container.get(key) if isinstance(container, dict) else None
    return value if isinstance(value, dict) else {}


def _run_data(document: Any) -> dict[str, Any]:
    data = _get_dict(document, "data")
    return _get_dict(_get_dict(data, "resultData"), "runData")


def _output_items(run: Any) -> list[Any]:
    """Flatten all output channels of a run into a single list of items."""
    channels = _get_dict(run, "data").get("main")
    if not isinstance(channels, list):
        return []
    items: list[Any] = []
    for channel in channels:
        if isinstance(channel, list):
            items.extend(channel)
        else:
            items.append(channel)
    return items


def _number_or_none(value: Any) -> Optional[Union[int, float]]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    return None


def _short_type(node_type: Any) -> Optional[str]:
    if isinstance(node_type, str):
        return node_type.split(".")[-1]
    return None


def _summarize_node(node: dict[str, Any], run_data: dict[str, Any]) -> NodeRunSummary:
    name = node.get("name")
    runs = run_data.get(name) if isinstance(name, str) else None
    ran = isinstance(runs, list) and len(runs) > 0
    # Later retries within the same execution supersede earlier runs
    last_run = runs[-1] if ran else None
    last_run = last_run if isinstance(last_run, dict) else {}

    payloads = [
        item["json"]
        for item in _output_items(last_run)
        if isinstance(item, dict) and item.get("json") is not None
    ]
    if len(payloads) == 1:
        output = payloads[0]
    elif payloads:
        output = payloads
    else:
        output = None

    error = last_run.get("error")
    return NodeRunSummary(
        name=str(name),
        type=_short_type(node.get("type")),
        ran=ran,
        startTime=_number_or_none(last_run.get("startTime")),
        executionTime=_number_or_none(last_run.get("executionTime")),
        error=error.get("message") if isinstance(error, dict) else None,
        output=output,
    )


def extract_node_timeline(document: Any) -> list[NodeRunSummary]:
    """
    Turn an execution document into the ordered list of nodes that ran.

    Nodes without runs are dropped; the rest are sorted by the start time of
    their last run, with a missing start time sorting first.
    """
    workflow_nodes = _get_dict(document, "workflowData").get("nodes")
    if not isinstance(workflow_nodes, list):
        return []
    run_data = _run_data(document)

    summaries = [
        _summarize_node(node, run_data)
        for node in workflow_nodes
        if isinstance(node, dict)
    ]
    ran = [summary for summary in summaries if summary.ran]
    return sorted(ran, key=lambda summary: summary.startTime or 0)


def _find_custom_value(document: Any, key: str) -> Any:
    if not isinstance(document, dict):
        raise DataShapeError("execution document is not an object")

    custom_data = _get_dict(document, "customData")
    if key in custom_data:
        return custom_data[key]

    annotation_data = _get_dict(_get_dict(document, "annotation"), "customData")
    if key in annotation_data:
        return annotation_data[key]

    run_data = _run_data(document)
    if not run_data:
        logger.debug(
            "Execution document has no run data",
            execution_id=document.get("id"),
            top_level_keys=sorted(document.keys()),
        )
        return None

    for runs in run_data.values():
        for run in runs or []:
            for item in _output_items(run):
                payload = _get_dict(item, "json")
                if key in payload:
                    return payload[key]
    return None


def extract_custom_value(document: Any, key: str) -> Any:
    """
    Pull one business value (e.g. an order number) out of an execution document.

    Looks in the execution's custom data, then in its annotation's custom data,
    then in every output item of every node run, in run-data order. Returns the
    first match, or None if the key is absent or the document is malformed.
    """
    try:
        return _find_custom_value(document, key)
    except (DataShapeError, TypeError, AttributeError) as e:
        logger.debug("Could not read execution document", key=key, error=str(e))
        return None


def extract_execution_id(url: Optional[str]) -> Optional[str]:
    """
    Extract an execution id from an execution URL.

    Handles URLs like:
        https://n8n.example.com/workflow/abc123/executions/12345
        https://n8n.example.com/execution/12345
    falling back to the last path segment.
    """
    if not url:
        return None
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None

    parts = [part for part in parsed.path.split("/") if part]
    for marker in ("executions", "execution"):
        if marker in parts:
            index = parts.index(marker)
            if index + 1 < len(parts):
                return parts[index + 1]
    return parts[-1] if parts else None


def build_execution_detail(document: dict[str, Any]) -> dict[str, Any]:
    """Execution header plus its node timeline, ready for display."""
    return {
        "execution": {
            "id": document.get("id"),
            "status": document.get("status"),
            "startedAt": document.get("startedAt"),
            "stoppedAt": document.get("stoppedAt"),
            "mode": document.get("mode"),
        },
        "nodes": [node.model_dump() for node in extract_node_timeline(document)],
    }
