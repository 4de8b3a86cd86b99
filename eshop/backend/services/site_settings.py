"""
Site Settings Service.

Storefront appearance (hero, links, menus) and the backoffice navigation tree.
"""

from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from eshop.backend.core.exceptions import ValidationError
from eshop.backend.schemas.settings import (
    AdminMenuItem,
    LinkSettings,
    MenuSettings,
    SiteSettings,
    VisualSettings,
    default_admin_menu,
)
from eshop.backend.services.base import BaseService
from eshop.backend.services.config_store import (
    ADMIN_MENU_KEY,
    SITE_LINKS_KEY,
    SITE_MENU_KEY,
    SITE_SETTINGS_KEY,
    SITE_VISUAL_KEY,
    ConfigStoreService,
)

_admin_menu_adapter = TypeAdapter(list[AdminMenuItem])


class SiteSettingsService(BaseService):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.store = ConfigStoreService(session)

    async def get_visual(self) -> VisualSettings:
        return await self.store.read_model(SITE_VISUAL_KEY, VisualSettings)

    async def save_visual(self, data: VisualSettings) -> VisualSettings:
        await self.store.write_model(SITE_VISUAL_KEY, data)
        self._log_operation("Site visual saved")
        return data

    async def get_links(self) -> LinkSettings:
        return await self.store.read_model(SITE_LINKS_KEY, LinkSettings)

    async def save_links(self, data: LinkSettings) -> LinkSettings:
        await self.store.write_model(SITE_LINKS_KEY, data)
        self._log_operation("Site links saved", footer_links=len(data.footer_links))
        return data

    async def get_menu(self) -> MenuSettings:
        return await self.store.read_model(SITE_MENU_KEY, MenuSettings)

    async def save_menu(self, data: MenuSettings) -> MenuSettings:
        await self.store.write_model(SITE_MENU_KEY, data)
        self._log_operation(
            "Site menu saved",
            main_items=len(data.main_menu),
            footer_items=len(data.footer_menu),
        )
        return data

    async def get_site_settings(self) -> SiteSettings:
        return await self.store.read_model(SITE_SETTINGS_KEY, SiteSettings)

    async def save_site_settings(self, data: SiteSettings) -> SiteSettings:
        await self.store.write_model(SITE_SETTINGS_KEY, data)
        self._log_operation("Site settings saved")
        return data

    async def get_admin_menu(self) -> list[AdminMenuItem]:
        """Stored tree, or the default sections when empty or unreadable."""
        defaults = default_admin_menu()
        raw = await self.store.read(
            ADMIN_MENU_KEY,
            _admin_menu_adapter.dump_python(defaults, mode="json", by_alias=True),
        )
        if not isinstance(raw, list) or not raw:
            return defaults
        try:
            return _admin_menu_adapter.validate_python(raw)
        except PydanticValidationError:
            self._logger.warning("Stored admin menu is invalid, using defaults")
            return defaults

    async def save_admin_menu(self, items: Any) -> list[AdminMenuItem]:
        if not isinstance(items, list):
            raise ValidationError("Neplatný formát menu.")
        try:
            menu = _admin_menu_adapter.validate_python(items)
        except PydanticValidationError as e:
            fields = [".".join(map(str, err["loc"])) for err in e.errors()]
            raise ValidationError("Neplatný formát menu.", details={"fields": fields}) from e

        await self.store.write(
            ADMIN_MENU_KEY,
            _admin_menu_adapter.dump_python(menu, mode="json", by_alias=True),
        )
        self._log_operation("Admin menu saved", sections=len(menu))
        return menu
