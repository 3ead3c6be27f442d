"""MCP server exposing freelance_billing closure capabilities."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, Protocol

import httpx
from fastmcp import FastMCP

from freelance_billing.core.settings import get_settings

ClosureStatusFilter = Literal["open", "closed"]
ParamValue = str | int | float | bool | None
ParamsMapping = Mapping[str, ParamValue]


class APIRequester(Protocol):
    """Requester abstraction to simplify HTTP boundary testing."""

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: ParamsMapping | None = None,
        json_body: Mapping[str, object] | None = None,
    ) -> object: ...


@dataclass(slots=True, frozen=True)
class HTTPAPIRequester:
    """HTTP client wrapper that acts on behalf of one user."""

    base_url: str
    timeout_seconds: float
    user_id: str | None = None
    user_id_header: str = "X-User-Id"

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: ParamsMapping | None = None,
        json_body: Mapping[str, object] | None = None,
    ) -> object:
        headers = {self.user_id_header: self.user_id} if self.user_id else None
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_seconds,
            headers=headers,
        ) as client:
            response = await client.request(
                method=method,
                url=path,
                params=params,
                json=dict(json_body) if json_body else None,
            )

        if response.is_success:
            if response.status_code == httpx.codes.NO_CONTENT:
                return {}
            return _parse_json_response(response)
        raise RuntimeError(_build_api_error(response))


def _parse_json_response(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError as exc:
        raise RuntimeError(
            f"API returned a non-JSON response with status {response.status_code}."
        ) from exc


def _build_api_error(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        if text:
            return f"API request failed with status {response.status_code}: {text}"
        return f"API request failed with status {response.status_code}."

    if isinstance(payload, Mapping):
        error_code = payload.get("code")
        error_message = payload.get("message")
        details = payload.get("details")
        if isinstance(error_code, str) and isinstance(error_message, str):
            if details is None:
                return f"API error {error_code}: {error_message}"
            return f"API error {error_code}: {error_message} | details={details}"

    return f"API request failed with status {response.status_code}: {payload}"


def create_mcp_server(
    *,
    api_base_url: str | None = None,
    timeout_seconds: float | None = None,
    user_id: str | None = None,
    requester: APIRequester | None = None,
) -> FastMCP:
    """Create MCP server with closure tools mapped to REST endpoints."""

    settings = get_settings()
    resolved_base_url = (api_base_url or settings.mcp_api_base_url).rstrip("/")
    resolved_timeout = (
        settings.mcp_api_timeout_seconds if timeout_seconds is None else timeout_seconds
    )
    if resolved_timeout <= 0:
        raise ValueError("MCP API timeout must be greater than zero.")

    mcp = FastMCP(name="Freelance Billing")
    api_requester: APIRequester = requester or HTTPAPIRequester(
        base_url=resolved_base_url,
        timeout_seconds=resolved_timeout,
        user_id=user_id or settings.mcp_user_id,
        user_id_header=settings.user_id_header,
    )

    @mcp.tool
    async def list_monthly_closures(
        year: int | None = None,
        status: ClosureStatusFilter | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> object:
        """List monthly closures, newest period first."""

        params: dict[str, ParamValue] = {"limit": limit, "offset": offset}
        if year is not None:
            params["year"] = year
        if status is not None:
            params["status"] = status
        return await api_requester.request(
            "GET",
            "/v1/monthly-closures",
            params=params,
        )

    @mcp.tool
    async def get_monthly_closure(closure_id: str) -> object:
        """Return one closure with client rows, expenses, totals and flags."""

        return await api_requester.request(
            "GET",
            f"/v1/monthly-closures/{closure_id}",
        )

    @mcp.tool
    async def create_monthly_closure(
        month: int,
        year: int,
        tax_percentage: str,
        hourly_rate: str,
        notes: str | None = None,
        expenses: list[dict[str, object]] | None = None,
    ) -> object:
        """Create an open closure from the month's tasks and expenses."""

        payload: dict[str, object] = {
            "month": month,
            "year": year,
            "tax_percentage": tax_percentage,
            "hourly_rate": hourly_rate,
        }
        if notes is not None:
            payload["notes"] = notes
        if expenses:
            payload["expenses"] = expenses

        return await api_requester.request(
            "POST",
            "/v1/monthly-closures",
            json_body=payload,
        )

    @mcp.tool
    async def close_monthly_closure(closure_id: str) -> object:
        """Close an open closure when no task blocks it."""

        return await api_requester.request(
            "POST",
            f"/v1/monthly-closures/{closure_id}/close",
        )

    @mcp.tool
    async def reopen_monthly_closure(closure_id: str) -> object:
        """Reopen a closed closure."""

        return await api_requester.request(
            "POST",
            f"/v1/monthly-closures/{closure_id}/reopen",
        )

    @mcp.tool
    async def update_monthly_closure(
        closure_id: str,
        tax_percentage: str | None = None,
        hourly_rate: str | None = None,
        notes: str | None = None,
        clear_notes: bool = False,
    ) -> object:
        """Change settings or notes of an open closure without recomputing rows."""

        payload: dict[str, object] = {}
        if tax_percentage is not None:
            payload["tax_percentage"] = tax_percentage
        if hourly_rate is not None:
            payload["hourly_rate"] = hourly_rate
        if clear_notes:
            payload["notes"] = None
        elif notes is not None:
            payload["notes"] = notes
        if not payload:
            raise ValueError("Provide at least one field to update.")

        return await api_requester.request(
            "PATCH",
            f"/v1/monthly-closures/{closure_id}",
            json_body=payload,
        )

    @mcp.tool
    async def delete_monthly_closure(closure_id: str) -> object:
        """Delete a closure and its line items."""

        return await api_requester.request(
            "DELETE",
            f"/v1/monthly-closures/{closure_id}",
        )

    @mcp.tool
    async def add_closure_expense(
        closure_id: str,
        expense_id: str | None = None,
        name: str | None = None,
        description: str | None = None,
        amount: str | None = None,
    ) -> object:
        """Attach a registered expense (expense_id) or a manual one (name)."""

        if (expense_id is None) == (name is None):
            raise ValueError("Provide exactly one of expense_id or name.")

        payload: dict[str, object] = {}
        if expense_id is not None:
            payload["expense_id"] = expense_id
        if name is not None:
            payload["name"] = name
        if description is not None:
            payload["description"] = description
        if amount is not None:
            payload["amount"] = amount

        return await api_requester.request(
            "POST",
            f"/v1/monthly-closures/{closure_id}/expenses",
            json_body=payload,
        )

    @mcp.tool
    async def update_closure_expense_amount(
        closure_id: str,
        expense_snapshot_id: str,
        amount: str,
    ) -> object:
        """Change the amount of one expense line item of an open closure."""

        return await api_requester.request(
            "PATCH",
            f"/v1/monthly-closures/{closure_id}/expenses/{expense_snapshot_id}",
            json_body={"amount": amount},
        )

    @mcp.tool
    async def update_closure_expense(
        closure_id: str,
        expense_snapshot_id: str,
        amount: str | None = None,
        name: str | None = None,
        description: str | None = None,
        clear_description: bool = False,
    ) -> object:
        """Edit amount, name or description of one expense line item."""

        payload: dict[str, object] = {}
        if amount is not None:
            payload["amount"] = amount
        if name is not None:
            payload["name"] = name
        if clear_description:
            payload["description"] = None
        elif description is not None:
            payload["description"] = description
        if not payload:
            raise ValueError("Provide at least one field to update.")

        return await api_requester.request(
            "PATCH",
            f"/v1/monthly-closures/{closure_id}/expenses/{expense_snapshot_id}",
            json_body=payload,
        )

    @mcp.tool
    async def remove_closure_expense(
        closure_id: str,
        expense_snapshot_id: str,
    ) -> object:
        """Remove one expense line item from an open closure."""

        return await api_requester.request(
            "DELETE",
            f"/v1/monthly-closures/{closure_id}/expenses/{expense_snapshot_id}",
        )

    @mcp.tool
    async def list_expenses(include_inactive: bool = False) -> object:
        """List registered expenses."""

        params: dict[str, ParamValue] = {}
        if include_inactive:
            params["include_inactive"] = True
        return await api_requester.request(
            "GET",
            "/v1/expenses",
            params=params if params else None,
        )

    return mcp
