"""
Config Store Service.

JSON documents persisted under string keys, plus typed access to the
settings blobs defined in schemas.settings.
"""

import json
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from eshop.backend.repositories.config_entry import ConfigEntryRepository
from eshop.backend.services.base import BaseService

ModelT = TypeVar("ModelT", bound=BaseModel)

INVOICE_TEMPLATE_KEY = "invoice-template"
CHAT_SETTINGS_KEY = "chat-settings"
FLEXIBEE_SETTINGS_KEY = "flexibee-settings"
SITE_SETTINGS_KEY = "site-settings"
SITE_VISUAL_KEY = "site-visual"
SITE_LINKS_KEY = "site-links"
SITE_MENU_KEY = "site-menu"
ADMIN_MENU_KEY = "admin-menu"
TELEGRAM_OFFSET_KEY = "telegram-update-offset"


class ConfigStoreService(BaseService):
    """Read and write JSON blobs in the config table."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = ConfigEntryRepository(session)

    async def read(self, key: str, default: Any) -> Any:
        """
        Parsed value stored under `key`.

        A missing key is created with `default`. A value that is not valid
        JSON is overwritten with `default`.
        """
        entry = await self.repo.get(key)
        if entry is None:
            await self.write(key, default)
            return default

        try:
            return json.loads(entry.value)
        except json.JSONDecodeError:
            self._logger.warning("Config value is not valid JSON, restoring default", extra={"key": key})
            await self.write(key, default)
            return default

    async def write(self, key: str, value: Any) -> None:
        await self._execute_db_operation(
            "config_write",
            self.repo.upsert(key, json.dumps(value, ensure_ascii=False)),
        )
        self._log_debug("Config written", key=key)

    async def read_model(self, key: str, model_cls: type[ModelT]) -> ModelT:
        """
        Stored document merged over the model defaults.

        Anything that is not an object, or fails validation, yields the defaults.
        """
        default = model_cls()
        raw = await self.read(key, default.model_dump(mode="json", by_alias=True))
        if not isinstance(raw, dict):
            return default
        try:
            return model_cls.model_validate(raw)
        except PydanticValidationError as e:
            self._logger.warning(
                "Stored settings failed validation, using defaults",
                extra={"key": key, "error_count": e.error_count()},
            )
            return default

    async def write_model(self, key: str, value: BaseModel) -> None:
        await self.write(key, value.model_dump(mode="json", by_alias=True))
