"""
Integration Tests for invoices and the FlexiBee settings API.
"""

import xml.etree.ElementTree as ET

import pytest
from httpx import AsyncClient

from eshop.backend.schemas.order import OrderCreate, OrderItemInput
from eshop.backend.services.isdoc import ISDOC_NS
from eshop.backend.services.order import OrderService

INVOICES = "/api/v1/invoices"
FLEXIBEE = "/api/v1/flexibee"


@pytest.fixture
async def order(db_session):
    return await OrderService(db_session).create_order(
        OrderCreate(
            external_id="ORD-202503-K7M2Q9",
            customer_name="Firma s.r.o.",
            email="nakup@firma.sk",
            company_id="CZ12345678",
            items=[OrderItemInput(name="Nebula Edge Server", quantity=1, price=1000)],
        )
    )


@pytest.fixture
async def issued(client: AsyncClient, admin_headers, order) -> dict:
    response = await client.post(INVOICES, json={"orderId": order.external_id}, headers=admin_headers)
    return response.json()["data"]


class TestInvoices:
    @pytest.mark.asyncio
    async def test_issue_from_order(self, issued):
        invoice = issued["invoice"]

        assert invoice["invoiceNumber"].startswith("FA-")
        assert invoice["invoiceNumber"].endswith("-00001")
        assert invoice["orderId"] == "ORD-202503-K7M2Q9"
        assert invoice["basePrice"] == 1000
        assert invoice["vatValue"] == 210
        assert invoice["totalPrice"] == 1210
        assert invoice["customerVatId"] == "CZ12345678"
        assert issued["template"]["supplier"]["name"] == "2Pnet s.r.o."

    @pytest.mark.asyncio
    async def test_order_gets_invoice_number(self, client: AsyncClient, api, admin_headers, issued):
        response = await client.get("/api/v1/orders/ORD-202503-K7M2Q9", headers=admin_headers)
        assert api.assert_success(response)["data"]["invoiceNumber"] == issued["invoice"]["invoiceNumber"]

    @pytest.mark.asyncio
    async def test_issue_requires_order(self, client: AsyncClient, api, admin_headers):
        api.assert_error(await client.post(INVOICES, json={}, headers=admin_headers), 400, "VAL_VALIDATION_ERROR")
        api.assert_error(
            await client.post(INVOICES, json={"orderId": "ORD-NEZNAMA"}, headers=admin_headers),
            404,
            "RES_NOT_FOUND",
        )

    @pytest.mark.asyncio
    async def test_list_and_get(self, client: AsyncClient, api, admin_headers, issued):
        number = issued["invoice"]["invoiceNumber"]

        rows = api.assert_success(await client.get(INVOICES, headers=admin_headers))["data"]
        assert rows[0]["id"] == f"INV-{number}"
        assert rows[0]["customer"] == "Firma s.r.o."
        assert rows[0]["total"] == 1210

        detail = api.assert_success(await client.get(f"{INVOICES}/{number}", headers=admin_headers))["data"]
        assert detail["variableSymbol"] == issued["invoice"]["variableSymbol"]

    @pytest.mark.asyncio
    async def test_document_download(self, client: AsyncClient, admin_headers, issued):
        number = issued["invoice"]["invoiceNumber"]

        response = await client.get(f"{INVOICES}/{number}/document", headers=admin_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/xml")
        assert response.headers["content-disposition"] == f'attachment; filename="{number}.isdoc"'
        root = ET.fromstring(response.content)
        assert root.tag == f"{{{ISDOC_NS}}}Invoice"

    @pytest.mark.asyncio
    async def test_unknown_document(self, client: AsyncClient, api, admin_headers):
        response = await client.get(f"{INVOICES}/FA-1999-00001/document", headers=admin_headers)
        api.assert_error(response, 404, "RES_NOT_FOUND")

    @pytest.mark.asyncio
    async def test_template_round_trip(self, client: AsyncClient, api, admin_headers):
        template = api.assert_success(await client.get(f"{INVOICES}/template", headers=admin_headers))["data"]
        assert template["defaults"]["vatRate"] == 0.21

        template["defaults"]["dueDays"] = 30
        saved = await client.post(f"{INVOICES}/template", json=template, headers=admin_headers)
        assert api.assert_success(saved)["data"]["defaults"]["dueDays"] == 30

        reread = api.assert_success(await client.get(f"{INVOICES}/template", headers=admin_headers))["data"]
        assert reread["defaults"]["dueDays"] == 30

    @pytest.mark.asyncio
    async def test_template_requires_supplier(self, client: AsyncClient, api, admin_headers):
        response = await client.post(
            f"{INVOICES}/template", json={"supplier": {"name": " ", "ico": ""}}, headers=admin_headers
        )
        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")


class TestFlexibeeSettings:
    @pytest.mark.asyncio
    async def test_not_configured(self, client: AsyncClient, api, admin_headers, issued):
        status = api.assert_success(await client.get(f"{FLEXIBEE}/status", headers=admin_headers))["data"]
        assert status["configured"] is False
        assert "FLEXIBEE_URL" in status["missing"]

        response = await client.post(
            f"{FLEXIBEE}/invoices",
            json={"invoiceNumber": issued["invoice"]["invoiceNumber"]},
            headers=admin_headers,
        )
        api.assert_error(response, 400, "SYS_NOT_CONFIGURED")

    @pytest.mark.asyncio
    async def test_settings_are_masked(self, client: AsyncClient, api, admin_headers):
        settings = {
            "url": "https://demo.flexibee.eu:5434",
            "company": "demo",
            "username": "winstrom",
            "password": "tajne-heslo",
        }

        saved = api.assert_success(await client.post(f"{FLEXIBEE}/settings", json=settings, headers=admin_headers))
        assert saved["data"]["password"] == "••••••••"

        # posting the mask back keeps the stored password
        await client.post(
            f"{FLEXIBEE}/settings", json={**settings, "password": "••••••••"}, headers=admin_headers
        )
        status = api.assert_success(await client.get(f"{FLEXIBEE}/status", headers=admin_headers))["data"]
        assert status == {"configured": True, "missing": []}

        loaded = api.assert_success(await client.get(f"{FLEXIBEE}/settings", headers=admin_headers))["data"]
        assert loaded["company"] == "demo"
        assert loaded["password"] == "••••••••"
