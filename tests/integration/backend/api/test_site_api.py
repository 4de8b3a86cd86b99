"""
Integration Tests for storefront content settings.
"""

import pytest
from httpx import AsyncClient

SITE = "/api/v1/site"


class TestPublicContent:
    @pytest.mark.asyncio
    async def test_defaults(self, client: AsyncClient, api):
        visual = api.assert_success(await client.get(f"{SITE}/visual"))["data"]
        links = api.assert_success(await client.get(f"{SITE}/links"))["data"]
        menu = api.assert_success(await client.get(f"{SITE}/menu"))["data"]

        assert visual["primaryCtaLink"] == "/produkty"
        assert links["logoAdminLink"] == "/admin"
        assert [item["label"] for item in menu["mainMenu"]][0] == "Domov"
        assert menu["mobileMenuEnabled"] is True

    @pytest.mark.asyncio
    async def test_save_visual(self, client: AsyncClient, api, admin_headers):
        visual = api.assert_success(await client.get(f"{SITE}/visual"))["data"]
        visual["title"] = "Servis UPS do 48 hodín"
        visual["carouselImages"] = ["/img/ups.jpg", "/img/dc.jpg"]

        api.assert_success(await client.post(f"{SITE}/visual", json=visual, headers=admin_headers))

        reread = api.assert_success(await client.get(f"{SITE}/visual"))["data"]
        assert reread["title"] == "Servis UPS do 48 hodín"
        assert reread["carouselImages"] == ["/img/ups.jpg", "/img/dc.jpg"]

    @pytest.mark.asyncio
    async def test_save_menu_with_children(self, client: AsyncClient, api, admin_headers):
        menu = {
            "mainMenu": [
                {"label": "Riešenia", "href": "/riesenia", "children": [{"label": "UPS", "href": "/riesenia/ups"}]}
            ],
            "footerMenu": [],
            "mobileMenuEnabled": False,
        }

        saved = api.assert_success(await client.post(f"{SITE}/menu", json=menu, headers=admin_headers))["data"]

        assert saved["mainMenu"][0]["children"][0]["href"] == "/riesenia/ups"
        assert saved["mobileMenuEnabled"] is False

    @pytest.mark.asyncio
    async def test_combined_settings(self, client: AsyncClient, api, admin_headers):
        settings = api.assert_success(await client.get(f"{SITE}/settings"))["data"]
        settings["links"]["footerLinks"] = [{"label": "Kontakt", "href": "/kontakt"}]

        saved = await client.post(f"{SITE}/settings", json=settings, headers=admin_headers)

        assert api.assert_success(saved)["data"]["links"]["footerLinks"] == [{"label": "Kontakt", "href": "/kontakt"}]

    @pytest.mark.asyncio
    async def test_saving_requires_admin(self, client: AsyncClient, api, customer_headers):
        response = await client.post(f"{SITE}/links", json={}, headers=customer_headers)
        api.assert_error(response, 403, "AUTHZ_FORBIDDEN")


class TestAdminMenu:
    @pytest.mark.asyncio
    async def test_default_sections(self, client: AsyncClient, api, admin_headers):
        data = api.assert_success(await client.get(f"{SITE}/admin-menu", headers=admin_headers))["data"]

        assert len(data) == 5
        assert all(section["children"] for section in data)

    @pytest.mark.asyncio
    async def test_save(self, client: AsyncClient, api, admin_headers):
        menu = [{"id": "section-orders", "label": "Objednávky", "children": [{"id": "admin-orders", "label": "Zoznam"}]}]

        api.assert_success(await client.post(f"{SITE}/admin-menu", json=menu, headers=admin_headers))

        data = api.assert_success(await client.get(f"{SITE}/admin-menu", headers=admin_headers))["data"]
        assert [section["id"] for section in data] == ["section-orders"]

    @pytest.mark.asyncio
    async def test_rejects_non_list(self, client: AsyncClient, api, admin_headers):
        response = await client.post(f"{SITE}/admin-menu", json={"id": "x"}, headers=admin_headers)
        api.assert_error(response, 400, "VAL_VALIDATION_ERROR")
