from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from fastapi.testclient import TestClient

from freelance_billing.api.app import create_app
from freelance_billing.db.models.task import TaskStatus

if TYPE_CHECKING:
    from conftest import Seeder

MONEY_FIELDS = ("gross_amount", "tax_amount", "net_amount")


def create_payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "month": 5,
        "year": 2024,
        "tax_percentage": "10.00",
        "hourly_rate": "100.00",
    }
    payload.update(overrides)
    return payload


def test_create_monthly_closure_returns_201_with_snapshot_shape(
    client: TestClient,
    seeder: Seeder,
    user_id: UUID,
    headers: dict[str, str],
) -> None:
    acme_id = seeder.client(user_id=user_id, name="Acme")
    seeder.task(
        user_id=user_id,
        client_id=acme_id,
        creation_date=date(2024, 5, 10),
        hours_spent="12.50",
    )

    response = client.post(
        "/v1/monthly-closures",
        json=create_payload(notes="First month"),
        headers=headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "open"
    assert body["closed_at"] is None
    assert body["period"] == "2024-05"
    assert body["tax_percentage"] == "10.00"
    assert body["hourly_rate"] == "100.00"
    assert body["notes"] == "First month"
    assert body["clients"] == [
        {
            "id": body["clients"][0]["id"],
            "client": {"id": str(acme_id), "name": "Acme"},
            "total_hours": "12.50",
            "gross_amount": "1250.00",
            "tax_amount": "125.00",
            "net_amount": "1125.00",
        }
    ]
    assert body["expenses"] == []
    assert body["totals"] == {
        "total_hours": "12.50",
        "gross_amount": "1250.00",
        "tax_amount": "125.00",
        "net_amount": "1125.00",
        "total_expenses": "0.00",
        "final_amount": "1125.00",
    }
    assert body["has_pending_tasks"] is False
    assert body["pending_tasks_count"] == 0
    assert body["has_tasks_without_hours"] is False
    assert body["tasks_without_hours_count"] == 0
    assert "flags" not in body


def test_create_monthly_closure_without_user_header_returns_400(
    client: TestClient,
) -> None:
    response = client.post("/v1/monthly-closures", json=create_payload())

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_REQUEST"


def test_create_monthly_closure_with_malformed_user_header_returns_400(
    client: TestClient,
) -> None:
    response = client.post(
        "/v1/monthly-closures",
        json=create_payload(),
        headers={"X-User-Id": "not-a-uuid"},
    )

    assert response.status_code == 400


def test_create_monthly_closure_validates_payload_ranges(
    client: TestClient, headers: dict[str, str]
) -> None:
    invalid_payloads = [
        create_payload(month=13),
        create_payload(year=1999),
        create_payload(tax_percentage="100.01"),
        create_payload(hourly_rate="0.00"),
        create_payload(hourly_rate="abc"),
        create_payload(hourly_rate="999999999999999"),
        create_payload(notes="x" * 5001),
        create_payload(expenses=[{"name": "T", "amount": "10.00"}]),
        create_payload(expenses=[{"name": "Taxi", "amount": "0.00"}]),
        create_payload(expenses=[{"name": "Taxi", "amount": "12345678901.00"}]),
    ]

    for payload in invalid_payloads:
        response = client.post("/v1/monthly-closures", json=payload, headers=headers)
        assert response.status_code == 400, payload
        assert response.json()["code"] == "INVALID_REQUEST"


def test_create_monthly_closure_with_unstorable_billing_returns_400(
    client: TestClient,
    seeder: Seeder,
    user_id: UUID,
    headers: dict[str, str],
) -> None:
    acme_id = seeder.client(user_id=user_id, name="Acme")
    seeder.task(
        user_id=user_id,
        client_id=acme_id,
        creation_date=date(2024, 5, 10),
        hours_spent="20.00",
    )

    response = client.post(
        "/v1/monthly-closures",
        json=create_payload(hourly_rate="9999999999.99"),
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_REQUEST"
    listed = client.get("/v1/monthly-closures", headers=headers).json()
    assert listed["total"] == 0


def test_create_monthly_closure_duplicate_period_returns_409(
    client: TestClient, headers: dict[str, str]
) -> None:
    first = client.post("/v1/monthly-closures", json=create_payload(), headers=headers)
    second = client.post(
        "/v1/monthly-closures",
        json=create_payload(hourly_rate="200.00"),
        headers=headers,
    )

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["code"] == "DUPLICATE_CLOSURE"


def test_create_monthly_closure_with_unknown_expense_returns_404(
    client: TestClient, headers: dict[str, str]
) -> None:
    response = client.post(
        "/v1/monthly-closures",
        json=create_payload(expenses=[{"expense_id": str(uuid4())}]),
        headers=headers,
    )

    assert response.status_code == 404
    assert response.json()["code"] == "EXPENSE_NOT_FOUND"


def test_get_monthly_closure_unknown_id_returns_404(
    client: TestClient, headers: dict[str, str]
) -> None:
    response = client.get(f"/v1/monthly-closures/{uuid4()}", headers=headers)

    assert response.status_code == 404
    assert response.json()["code"] == "CLOSURE_NOT_FOUND"


def test_list_monthly_closures_orders_newest_first_and_filters(
    client: TestClient, headers: dict[str, str]
) -> None:
    for year, month in [(2023, 12), (2024, 2), (2024, 1)]:
        assert (
            client.post(
                "/v1/monthly-closures",
                json=create_payload(year=year, month=month),
                headers=headers,
            ).status_code
            == 201
        )

    response = client.get("/v1/monthly-closures", headers=headers)
    filtered = client.get(
        "/v1/monthly-closures",
        params={"year": 2024, "limit": 1},
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 3
    assert [item["period"] for item in body["items"]] == [
        "2024-02",
        "2024-01",
        "2023-12",
    ]
    assert "totals" not in body["items"][0]
    filtered_body = filtered.json()
    assert filtered_body["total"] == 2
    assert [item["period"] for item in filtered_body["items"]] == ["2024-02"]


def test_list_monthly_closures_rejects_unknown_status(
    client: TestClient, headers: dict[str, str]
) -> None:
    response = client.get(
        "/v1/monthly-closures",
        params={"status": "archived"},
        headers=headers,
    )

    assert response.status_code == 400


def test_close_blocked_returns_422_with_counts(
    client: TestClient,
    seeder: Seeder,
    user_id: UUID,
    headers: dict[str, str],
) -> None:
    acme_id = seeder.client(user_id=user_id, name="Acme")
    seeder.task(
        user_id=user_id,
        client_id=acme_id,
        creation_date=date(2024, 5, 3),
        hours_spent="4.00",
        status=TaskStatus.PENDING,
    )
    seeder.task(
        user_id=user_id,
        client_id=acme_id,
        creation_date=date(2024, 5, 4),
        hours_spent="0",
    )
    closure = client.post(
        "/v1/monthly-closures", json=create_payload(), headers=headers
    ).json()

    response = client.post(
        f"/v1/monthly-closures/{closure['id']}/close",
        headers=headers,
    )

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "CLOSURE_BLOCKED"
    assert body["details"] == {
        "pending_tasks_count": 1,
        "tasks_without_hours_count": 1,
    }


def test_reopen_open_closure_returns_422(
    client: TestClient, headers: dict[str, str]
) -> None:
    closure = client.post(
        "/v1/monthly-closures", json=create_payload(), headers=headers
    ).json()

    response = client.post(
        f"/v1/monthly-closures/{closure['id']}/reopen",
        headers=headers,
    )

    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_STATE_TRANSITION"


def test_update_monthly_closure_requires_some_field(
    client: TestClient, headers: dict[str, str]
) -> None:
    closure = client.post(
        "/v1/monthly-closures", json=create_payload(), headers=headers
    ).json()

    response = client.patch(
        f"/v1/monthly-closures/{closure['id']}",
        json={},
        headers=headers,
    )

    assert response.status_code == 400


def test_update_monthly_closure_can_clear_notes(
    client: TestClient, headers: dict[str, str]
) -> None:
    closure = client.post(
        "/v1/monthly-closures",
        json=create_payload(notes="draft"),
        headers=headers,
    ).json()

    response = client.patch(
        f"/v1/monthly-closures/{closure['id']}",
        json={"notes": None, "tax_percentage": "5.00"},
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["notes"] is None
    assert body["tax_percentage"] == "5.00"


def test_delete_monthly_closure_returns_204_then_404(
    client: TestClient, headers: dict[str, str]
) -> None:
    closure = client.post(
        "/v1/monthly-closures", json=create_payload(), headers=headers
    ).json()

    deleted = client.delete(f"/v1/monthly-closures/{closure['id']}", headers=headers)
    fetched = client.get(f"/v1/monthly-closures/{closure['id']}", headers=headers)

    assert deleted.status_code == 204
    assert deleted.content == b""
    assert fetched.status_code == 404


def test_add_closure_expense_payload_must_pick_one_source(
    client: TestClient, headers: dict[str, str]
) -> None:
    closure = client.post(
        "/v1/monthly-closures", json=create_payload(), headers=headers
    ).json()
    path = f"/v1/monthly-closures/{closure['id']}/expenses"

    both = client.post(
        path,
        json={"expense_id": str(uuid4()), "name": "Taxi", "amount": "10.00"},
        headers=headers,
    )
    neither = client.post(path, json={"amount": "10.00"}, headers=headers)

    assert both.status_code == 400
    assert neither.status_code == 400


def test_closure_expense_routes_return_expected_codes(
    client: TestClient, headers: dict[str, str]
) -> None:
    closure = client.post(
        "/v1/monthly-closures", json=create_payload(), headers=headers
    ).json()
    path = f"/v1/monthly-closures/{closure['id']}/expenses"

    created = client.post(
        path,
        json={"name": "Coworking", "description": "Day pass", "amount": "45"},
        headers=headers,
    )
    assert created.status_code == 201
    expense = created.json()
    assert expense["expense_id"] is None
    assert expense["amount"] == "45.00"
    assert expense["description"] == "Day pass"

    updated = client.patch(
        f"{path}/{expense['id']}",
        json={"amount": "0.00", "description": None},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["amount"] == "0.00"
    assert updated.json()["description"] is None

    missing = client.patch(
        f"{path}/{uuid4()}",
        json={"amount": "1.00"},
        headers=headers,
    )
    assert missing.status_code == 404
    assert missing.json()["code"] == "CLOSURE_EXPENSE_NOT_FOUND"

    removed = client.delete(f"{path}/{expense['id']}", headers=headers)
    assert removed.status_code == 204


def test_openapi_for_monthly_closures_contains_contract_response_codes() -> None:
    app = create_app()
    schema = app.openapi()
    paths = schema["paths"]

    create_codes = set(paths["/v1/monthly-closures"]["post"]["responses"].keys())
    close_codes = set(
        paths["/v1/monthly-closures/{closure_id}/close"]["post"]["responses"].keys()
    )
    add_expense_codes = set(
        paths["/v1/monthly-closures/{closure_id}/expenses"]["post"][
            "responses"
        ].keys()
    )

    assert {"201", "400", "404", "409"}.issubset(create_codes)
    assert {"200", "404", "409", "422"}.issubset(close_codes)
    assert {"201", "400", "404", "409"}.issubset(add_expense_codes)
