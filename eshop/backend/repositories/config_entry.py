"""
Config Entry Repository.

Raw access to the key/value settings table.
"""

from sqlalchemy import select

from eshop.backend.models.config_entry import ConfigEntry
from eshop.backend.repositories.base import BaseRepository


class ConfigEntryRepository(BaseRepository[ConfigEntry]):
    model = ConfigEntry

    async def get(self, key: str) -> ConfigEntry | None:
        result = await self.session.execute(select(ConfigEntry).where(ConfigEntry.key == key))
        return result.scalar_one_or_none()

    async def upsert(self, key: str, value: str) -> ConfigEntry:
        """Insert or overwrite the raw JSON text stored under `key`."""
        entry = await self.get(key)
        if entry is None:
            entry = ConfigEntry(key=key, value=value)
            self.session.add(entry)
        else:
            entry.value = value
        await self.session.flush()
        return entry

    async def delete_key(self, key: str) -> None:
        entry = await self.get(key)
        if entry is not None:
            await self.session.delete(entry)
            await self.session.flush()
