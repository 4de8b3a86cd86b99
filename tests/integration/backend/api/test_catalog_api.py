"""
Integration Tests for the product and category API.
"""

import pytest
from httpx import AsyncClient

PRODUCTS = "/api/v1/products"
CATEGORIES = "/api/v1/categories"


@pytest.fixture
async def category_id(client: AsyncClient, admin_headers) -> str:
    response = await client.post(CATEGORIES, json={"name": "Napájanie"}, headers=admin_headers)
    return response.json()["data"][0]["id"]


@pytest.fixture
async def ups(client: AsyncClient, admin_headers, category_id) -> dict:
    response = await client.post(
        PRODUCTS,
        json={
            "slug": "ups-powerguard-10k",
            "name": "UPS PowerGuard 10k",
            "price": 2890,
            "categoryId": category_id,
            "billingPeriod": "jednorazovo",
            "specs": ["10 kVA", "online"],
        },
        headers=admin_headers,
    )
    return response.json()["data"]


class TestCategories:
    @pytest.mark.asyncio
    async def test_create_category_and_subcategory(self, client: AsyncClient, api, admin_headers, category_id):
        response = await client.post(
            CATEGORIES, json={"name": "UPS", "categoryId": category_id}, headers=admin_headers
        )

        data = api.assert_success(response, 201)
        assert data["data"][0]["subcategories"][0]["name"] == "UPS"

    @pytest.mark.asyncio
    async def test_duplicate_name_conflicts(self, client: AsyncClient, api, admin_headers, category_id):
        response = await client.post(CATEGORIES, json={"name": "Napájanie"}, headers=admin_headers)
        api.assert_error(response, 409, "RES_CONFLICT")

    @pytest.mark.asyncio
    async def test_public_listing(self, client: AsyncClient, api, category_id):
        data = api.assert_success(await client.get(CATEGORIES))
        assert [c["name"] for c in data["data"]] == ["Napájanie"]

    @pytest.mark.asyncio
    async def test_delete_keeps_products(self, client: AsyncClient, api, admin_headers, category_id, ups):
        response = await client.delete(f"{CATEGORIES}/{category_id}", headers=admin_headers)
        assert response.status_code == 204

        product = api.assert_success(await client.get(f"{PRODUCTS}/{ups['slug']}"))["data"]
        assert product["categoryId"] is None


class TestProducts:
    @pytest.mark.asyncio
    async def test_created_product_shape(self, ups, category_id):
        assert ups["category"] == "Napájanie"
        assert ups["categoryId"] == category_id
        assert ups["billingPeriod"] == "jednorazovo"
        assert ups["price"] == 2890
        assert ups["active"] is True

    @pytest.mark.asyncio
    async def test_lookup_by_slug_or_id(self, client: AsyncClient, api, ups):
        by_slug = api.assert_success(await client.get(f"{PRODUCTS}/{ups['slug']}"))
        by_id = api.assert_success(await client.get(f"{PRODUCTS}/{ups['id']}"))
        assert by_slug["data"]["id"] == by_id["data"]["id"]

    @pytest.mark.asyncio
    async def test_list_filters(self, client: AsyncClient, api, ups):
        assert len(api.assert_success(await client.get(PRODUCTS, params={"q": "powerguard"}))["data"]) == 1
        assert api.assert_success(await client.get(PRODUCTS, params={"category": "Servery"}))["data"] == []

    @pytest.mark.asyncio
    async def test_update(self, client: AsyncClient, api, admin_headers, ups):
        response = await client.put(
            f"{PRODUCTS}/{ups['slug']}", json={"price": 2590, "active": False}, headers=admin_headers
        )

        data = api.assert_success(response)["data"]
        assert data["price"] == 2590
        assert data["active"] is False
        listed = api.assert_success(await client.get(PRODUCTS, params={"activeOnly": "true"}))
        assert listed["data"] == []

    @pytest.mark.asyncio
    async def test_create_without_category(self, client: AsyncClient, api, admin_headers):
        response = await client.post(PRODUCTS, json={"slug": "x", "name": "X", "price": 1}, headers=admin_headers)
        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, api, admin_headers, ups):
        assert (await client.delete(f"{PRODUCTS}/{ups['slug']}", headers=admin_headers)).status_code == 204
        api.assert_error(await client.get(f"{PRODUCTS}/{ups['slug']}"), 404, "RES_NOT_FOUND")
