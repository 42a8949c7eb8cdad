"""Integration tests for the record HTTP routes."""

from collections.abc import Callable
from datetime import datetime
from typing import Any

import orjson
import pytest
from fastapi import status
from httpx import ASGITransport, AsyncClient
from pytest_mock import MockerFixture

from taxregistry.api.main import create_app
from taxregistry.core.config import Settings
from taxregistry.core.types import Clock
from taxregistry.infrastructure.database.session import Database

type PayloadFactory = Callable[..., dict[str, Any]]


async def _create(client: AsyncClient, payload: dict[str, Any]) -> dict[str, Any]:
    response = await client.post("/records", json=payload)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    data: dict[str, Any] = response.json()["data"]
    return data


@pytest.mark.integration
class TestCreateRoute:
    async def test_created_record_in_camel_case(
        self, client: AsyncClient, make_payload: PayloadFactory
    ) -> None:
        response = await client.post("/records", json=make_payload())
        body = response.json()

        assert response.status_code == status.HTTP_201_CREATED
        assert body["success"] is True
        assert body["message"] == "Taxpayer record created successfully"
        assert body["data"]["certificateNo"] == "CERT-001"
        assert body["data"]["totalIncomeAmount"] == 220000
        assert body["data"]["totalTaxPaid"] == 11000
        assert body["data"]["latestYear"] == 2024
        assert body["data"]["expiryDate"]["formatted"] == "31 December 2025"
        assert body["error"] is None

    async def test_validation_failure(
        self, client: AsyncClient, make_payload: PayloadFactory
    ) -> None:
        response = await client.post(
            "/records",
            json=make_payload(
                amount=0,
                incomeLedger=[
                    {"year": 1999, "income": 10, "taxPaid": 1},
                    {"year": 2024, "income": -1, "taxPaid": 0},
                ],
            ),
        )
        body = response.json()

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert body["success"] is False
        assert body["errorKind"] == "VALIDATION_ERROR"
        assert body["error"]["amount"] == ["Amount must be greater than 0"]
        assert body["error"]["incomeLedger[0].year"] == [
            "Year must be between 2000 and 2025"
        ]
        assert "incomeLedger[1].income" in body["error"]

    async def test_duplicate_certificate(
        self, client: AsyncClient, make_payload: PayloadFactory
    ) -> None:
        await _create(client, make_payload())

        response = await client.post("/records", json=make_payload())

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == {
            "certificateNo": ["Certificate number already exists"]
        }

    async def test_body_must_be_an_object(self, client: AsyncClient) -> None:
        response = await client.post("/records", json=[1, 2, 3])
        body = response.json()

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert body["error_code"] == "VALIDATION_ERROR"

    async def test_correlation_id_is_echoed(
        self, client: AsyncClient, make_payload: PayloadFactory
    ) -> None:
        response = await client.post(
            "/records",
            json=make_payload(),
            headers={"X-Correlation-ID": "req-123"},
        )

        assert response.headers["X-Correlation-ID"] == "req-123"


@pytest.mark.integration
class TestRecordRoutes:
    async def test_get_update_delete_cycle(
        self, client: AsyncClient, make_payload: PayloadFactory
    ) -> None:
        created = await _create(client, make_payload())
        record_url = f"/records/{created['id']}"

        fetched = await client.get(record_url)
        assert fetched.status_code == status.HTTP_200_OK
        assert fetched.json()["data"]["id"] == created["id"]

        updated = await client.put(
            record_url,
            json=make_payload(
                name="Adaeze O. Okafor",
                incomeLedger=[{"year": 2025, "income": 1000, "taxPaid": 100}],
            ),
        )
        assert updated.status_code == status.HTTP_200_OK
        assert updated.json()["data"]["name"] == "Adaeze O. Okafor"
        assert updated.json()["data"]["latestYear"] == 2025

        deleted = await client.delete(record_url)
        assert deleted.status_code == status.HTTP_200_OK
        assert deleted.json()["message"] == (
            "Taxpayer Adaeze O. Okafor deleted successfully"
        )
        assert deleted.json()["data"]["yearsOfHistory"] == 1

        gone = await client.get(record_url)
        assert gone.status_code == status.HTTP_404_NOT_FOUND
        assert gone.json()["errorKind"] == "NOT_FOUND"

    @pytest.mark.parametrize("method", ["get", "delete"])
    async def test_malformed_id(self, client: AsyncClient, method: str) -> None:
        response = await getattr(client, method)("/records/not-an-id")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["message"] == "Invalid taxpayer ID format"

    async def test_update_requires_tin(
        self, client: AsyncClient, make_payload: PayloadFactory
    ) -> None:
        created = await _create(client, make_payload())

        response = await client.put(
            f"/records/{created['id']}", json=make_payload(tin=None)
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == {"tin": ["TIN is required"]}


@pytest.mark.integration
class TestListRoute:
    async def test_filters_and_summary(
        self, client: AsyncClient, make_payload: PayloadFactory
    ) -> None:
        await _create(client, make_payload())
        await _create(
            client,
            make_payload(
                certificateNo="CERT-002",
                email="b@example.com",
                expiryDate="2024-01-15T00:00:00Z",
                platform="Paystack",
            ),
        )

        response = await client.get(
            "/records", params={"status": "expired", "platform": "all"}
        )
        body = response.json()["data"]

        assert response.status_code == status.HTTP_200_OK
        assert [record["certificateNo"] for record in body["records"]] == [
            "CERT-002"
        ]
        assert body["summary"]["totalTaxpayers"] == body["pagination"]["total"] == 1
        assert body["filters"]["applied"]["status"] == "expired"
        assert body["filters"]["applied"]["platform"] is None
        assert body["filters"]["available"]["platforms"] == ["Paystack", "REMITA"]

    async def test_pagination_fields(
        self, client: AsyncClient, make_payload: PayloadFactory
    ) -> None:
        for n in range(3):
            await _create(
                client,
                make_payload(certificateNo=f"CERT-{n}", email=f"p{n}@example.com"),
            )

        response = await client.get("/records", params={"page": 1, "limit": 2})
        pagination = response.json()["data"]["pagination"]

        assert pagination == {
            "total": 3,
            "pages": 2,
            "page": 1,
            "limit": 2,
            "hasNextPage": True,
            "hasPrevPage": False,
        }

    async def test_bad_filter_value(self, client: AsyncClient) -> None:
        response = await client.get("/records", params={"year": "last"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == {"year": ["Year must be a number"]}


@pytest.mark.integration
class TestDocumentAndVerifyRoutes:
    async def test_render_certificate(
        self, client: AsyncClient, make_payload: PayloadFactory
    ) -> None:
        created = await _create(client, make_payload())

        response = await client.get(
            f"/records/{created['id']}/documents/certificate"
        )
        document = orjson.loads(response.content)

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"].startswith("application/json")
        assert document["record"]["certificateNo"] == "CERT-001"

    async def test_unknown_template(
        self, client: AsyncClient, make_payload: PayloadFactory
    ) -> None:
        created = await _create(client, make_payload())

        response = await client.get(f"/records/{created['id']}/documents/invoice")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_document_for_missing_record(self, client: AsyncClient) -> None:
        response = await client.get("/records/77/documents/receipt")
        body = response.json()

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert body["error_code"] == "NOT_FOUND"
        assert body["message"] == "Taxpayer record not found"

    async def test_renderer_failure_is_internal_error(
        self,
        mocker: MockerFixture,
        test_settings: Settings,
        database: Database,
        clock: Clock,
        make_payload: PayloadFactory,
    ) -> None:
        renderer = mocker.Mock(media_type="application/pdf")
        renderer.render.side_effect = RuntimeError("template engine offline")
        app = create_app(
            test_settings, database=database, renderer=renderer, clock=clock
        )
        transport = ASGITransport(app=app, raise_app_exceptions=False)

        async with AsyncClient(transport=transport, base_url="http://test") as client:
            created = await _create(client, make_payload())
            response = await client.get(f"/records/{created['id']}/documents/slip")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error_code"] == "INTERNAL_ERROR"

    async def test_verify_returns_public_fields(
        self,
        client: AsyncClient,
        make_payload: PayloadFactory,
        fixed_now: datetime,
    ) -> None:
        created = await _create(client, make_payload())

        response = await client.get(f"/verify/{created['id']}")
        body = response.json()

        assert response.status_code == status.HTTP_200_OK
        assert body["message"] == "Certificate verified"
        assert body["data"]["status"] == "active"
        assert body["data"]["daysUntilExpiry"] == 200
        assert body["data"]["totalTaxPaid"] == 11000
        assert body["data"]["issueDate"].startswith(fixed_now.date().isoformat())
        for private_field in ("email", "phoneNo", "address", "reference"):
            assert private_field not in body["data"]

    async def test_verify_unknown_record(self, client: AsyncClient) -> None:
        response = await client.get("/verify/12345")
        assert response.status_code == status.HTTP_404_NOT_FOUND
