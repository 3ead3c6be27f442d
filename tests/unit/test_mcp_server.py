from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field

import httpx
import pytest
from fastmcp import Client
from fastmcp.exceptions import ToolError

from freelance_billing.mcp.server import _build_api_error, create_mcp_server

CLOSURE_ID = "5f0c6a2e-3d4b-4c1a-9a55-0f1e2d3c4b5a"


@dataclass
class FakeRequester:
    responses: dict[tuple[str, str], object]
    calls: list[dict[str, object]] = field(default_factory=list)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str | int | float | bool | None] | None = None,
        json_body: Mapping[str, object] | None = None,
    ) -> object:
        self.calls.append(
            {
                "method": method,
                "path": path,
                "params": dict(params) if params else None,
                "json_body": dict(json_body) if json_body else None,
            }
        )

        value = self.responses[(method, path)]
        if isinstance(value, Exception):
            raise value
        return value


def _record_call(
    responses: dict[tuple[str, str], object],
    tool_name: str,
    arguments: dict[str, object],
) -> dict[str, object]:
    async def scenario() -> dict[str, object]:
        fake_requester = FakeRequester(responses=responses)
        server = create_mcp_server(
            api_base_url="http://example.test",
            timeout_seconds=1,
            requester=fake_requester,
        )
        async with Client(server) as client:
            await client.call_tool(tool_name, arguments)
        return fake_requester.calls[0]

    return asyncio.run(scenario())


def test_create_mcp_server_registers_expected_tools() -> None:
    async def scenario() -> list[str]:
        server = create_mcp_server(
            api_base_url="http://example.test",
            timeout_seconds=1,
            requester=FakeRequester(responses={}),
        )
        async with Client(server) as client:
            tools = await client.list_tools()
        return sorted(tool.name for tool in tools)

    tool_names = asyncio.run(scenario())

    assert tool_names == [
        "add_closure_expense",
        "close_monthly_closure",
        "create_monthly_closure",
        "delete_monthly_closure",
        "get_monthly_closure",
        "list_expenses",
        "list_monthly_closures",
        "remove_closure_expense",
        "reopen_monthly_closure",
        "update_closure_expense",
        "update_closure_expense_amount",
        "update_monthly_closure",
    ]


def test_create_monthly_closure_tool_sends_expected_payload() -> None:
    recorded_call = _record_call(
        {("POST", "/v1/monthly-closures"): {"id": CLOSURE_ID}},
        "create_monthly_closure",
        {
            "month": 5,
            "year": 2024,
            "tax_percentage": "10.00",
            "hourly_rate": "100.00",
            "expenses": [{"name": "Taxi", "amount": "35.00"}],
        },
    )

    assert recorded_call == {
        "method": "POST",
        "path": "/v1/monthly-closures",
        "params": None,
        "json_body": {
            "month": 5,
            "year": 2024,
            "tax_percentage": "10.00",
            "hourly_rate": "100.00",
            "expenses": [{"name": "Taxi", "amount": "35.00"}],
        },
    }


def test_list_monthly_closures_tool_forwards_filters() -> None:
    recorded_call = _record_call(
        {("GET", "/v1/monthly-closures"): {"items": []}},
        "list_monthly_closures",
        {"year": 2024, "status": "closed"},
    )

    assert recorded_call["params"] == {
        "year": 2024,
        "status": "closed",
        "limit": 50,
        "offset": 0,
    }


def test_close_monthly_closure_tool_posts_to_close_path() -> None:
    path = f"/v1/monthly-closures/{CLOSURE_ID}/close"
    recorded_call = _record_call(
        {("POST", path): {"status": "closed"}},
        "close_monthly_closure",
        {"closure_id": CLOSURE_ID},
    )

    assert recorded_call["method"] == "POST"
    assert recorded_call["path"] == path


def test_update_closure_expense_amount_tool_patches_line_item() -> None:
    path = f"/v1/monthly-closures/{CLOSURE_ID}/expenses/abc"
    recorded_call = _record_call(
        {("PATCH", path): {"amount": "200.00"}},
        "update_closure_expense_amount",
        {
            "closure_id": CLOSURE_ID,
            "expense_snapshot_id": "abc",
            "amount": "200.00",
        },
    )

    assert recorded_call["json_body"] == {"amount": "200.00"}


def test_update_monthly_closure_tool_sends_only_given_fields() -> None:
    path = f"/v1/monthly-closures/{CLOSURE_ID}"
    recorded_call = _record_call(
        {("PATCH", path): {"id": CLOSURE_ID}},
        "update_monthly_closure",
        {"closure_id": CLOSURE_ID, "hourly_rate": "120.00", "clear_notes": True},
    )

    assert recorded_call["method"] == "PATCH"
    assert recorded_call["json_body"] == {"hourly_rate": "120.00", "notes": None}


def test_delete_monthly_closure_tool_sends_delete() -> None:
    path = f"/v1/monthly-closures/{CLOSURE_ID}"
    recorded_call = _record_call(
        {("DELETE", path): {}},
        "delete_monthly_closure",
        {"closure_id": CLOSURE_ID},
    )

    assert recorded_call["method"] == "DELETE"
    assert recorded_call["path"] == path


def test_update_closure_expense_tool_patches_name_and_description() -> None:
    path = f"/v1/monthly-closures/{CLOSURE_ID}/expenses/abc"
    recorded_call = _record_call(
        {("PATCH", path): {"name": "Cloud hosting"}},
        "update_closure_expense",
        {
            "closure_id": CLOSURE_ID,
            "expense_snapshot_id": "abc",
            "name": "Cloud hosting",
            "description": "VPS plus backups",
        },
    )

    assert recorded_call["json_body"] == {
        "name": "Cloud hosting",
        "description": "VPS plus backups",
    }


def test_update_tools_require_at_least_one_field() -> None:
    async def scenario() -> None:
        server = create_mcp_server(
            api_base_url="http://example.test",
            timeout_seconds=1,
            requester=FakeRequester(responses={}),
        )
        async with Client(server) as client:
            await client.call_tool("update_monthly_closure", {"closure_id": CLOSURE_ID})

    with pytest.raises(ToolError, match="at least one field"):
        asyncio.run(scenario())


def test_add_closure_expense_tool_requires_exactly_one_source() -> None:
    async def scenario() -> None:
        server = create_mcp_server(
            api_base_url="http://example.test",
            timeout_seconds=1,
            requester=FakeRequester(responses={}),
        )
        async with Client(server) as client:
            await client.call_tool(
                "add_closure_expense",
                {"closure_id": CLOSURE_ID, "amount": "10.00"},
            )

    with pytest.raises(ToolError, match="exactly one"):
        asyncio.run(scenario())


def test_create_mcp_server_rejects_non_positive_timeout() -> None:
    with pytest.raises(ValueError, match="greater than zero"):
        create_mcp_server(api_base_url="http://example.test", timeout_seconds=0)


def test_build_api_error_uses_contract_payload_shape() -> None:
    response = httpx.Response(
        status_code=422,
        json={
            "code": "CLOSURE_BLOCKED",
            "message": "Cause: pending tasks. Action: complete them.",
            "details": {"pending_tasks_count": 1, "tasks_without_hours_count": 0},
        },
        request=httpx.Request("POST", "http://example.test/v1/monthly-closures"),
    )

    error_message = _build_api_error(response)

    assert "CLOSURE_BLOCKED" in error_message
    assert "'pending_tasks_count': 1" in error_message
