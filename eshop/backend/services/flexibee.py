"""
FlexiBee Service.

Pushes issued invoices to ABRA Flexi (FlexiBee) as `faktura-vydana`
records and fetches their ISDOC export. Credentials come from FLEXIBEE_*
secrets first, then from the admin-saved settings.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from urllib.parse import quote

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from eshop.backend.core.config import get_app_config, get_settings
from eshop.backend.core.exceptions import ConfigurationError, ExternalServiceError, NotFoundError
from eshop.backend.core.logging import log_with_source
from eshop.backend.core.resilience import call_with_resilience
from eshop.backend.core.utils import digits_only, round_money
from eshop.backend.models.invoice import Invoice
from eshop.backend.repositories.invoice import InvoiceRepository
from eshop.backend.schemas.settings import FlexibeeSettings
from eshop.backend.services.base import BaseService
from eshop.backend.services.config_store import FLEXIBEE_SETTINGS_KEY, ConfigStoreService

PASSWORD_MASK = "••••••••"
NOT_CONFIGURED_MESSAGE = "FlexiBee prístup nie je nastavený (.env alebo admin nastavenia)."
DISABLED_MESSAGE = "Integrácia FlexiBee je vypnutá."

_ENV_NAMES = {
    "url": "FLEXIBEE_URL",
    "company": "FLEXIBEE_COMPANY",
    "username": "FLEXIBEE_USERNAME",
    "password": "FLEXIBEE_PASSWORD",
}


@dataclass(frozen=True)
class FlexibeeConfig:
    base_url: str
    company: str
    username: str
    password: str

    @property
    def invoices_url(self) -> str:
        return f"{self.base_url}/{self.company}/faktura-vydana"

    @property
    def auth(self) -> httpx.BasicAuth:
        return httpx.BasicAuth(self.username, self.password)


def mask_settings(settings: FlexibeeSettings) -> FlexibeeSettings:
    """Copy safe to return to the admin panel."""
    return settings.model_copy(update={"password": PASSWORD_MASK if settings.password else ""})


def build_invoice_payload(invoice: Invoice, text: str) -> dict[str, Any]:
    """`winstrom` import document for one issued invoice."""
    order = invoice.order
    items = order.items if order else []
    return {
        "winstrom": {
            "faktura-vydana": [
                {
                    "kod": invoice.number,
                    "varSym": invoice.variable_symbol or digits_only(invoice.number)[:10],
                    "vystaveno": invoice.issue_date.isoformat(),
                    "datSplat": invoice.due_date.isoformat(),
                    "sumCelkem": float(round_money(invoice.total_price)),
                    "mena": invoice.currency,
                    "text": text,
                    "osvobDph": False,
                    "odbm": {
                        "nazFirmy": invoice.customer_name,
                        "ico": invoice.customer_ico or "",
                        "dic": invoice.customer_dic or "",
                        "email": order.email if order else "",
                    },
                    "polozkyFaktury": [
                        {
                            "nazPol": item.name,
                            "mnozMj": item.quantity,
                            "sumZkl": float(round_money(Decimal(item.price) * item.quantity)),
                            "cenaMj": float(round_money(item.price)),
                        }
                        for item in items
                    ],
                }
            ]
        }
    }


def _api_error(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    winstrom = data.get("winstrom")
    if isinstance(winstrom, dict) and isinstance(winstrom.get("error"), dict):
        return winstrom["error"].get("message")
    if isinstance(data.get("error"), dict):
        return data["error"].get("message")
    return None


class FlexibeeService(BaseService):
    def __init__(self, session: AsyncSession, client: httpx.AsyncClient | None = None) -> None:
        super().__init__(session)
        self.store = ConfigStoreService(session)
        self.invoices = InvoiceRepository(session)
        self._client = client

    async def get_settings(self) -> FlexibeeSettings:
        return await self.store.read_model(FLEXIBEE_SETTINGS_KEY, FlexibeeSettings)

    async def save_settings(self, settings: FlexibeeSettings) -> FlexibeeSettings:
        current = await self.get_settings()
        # The admin panel posts the mask back when the password was not changed
        if settings.password == PASSWORD_MASK:
            settings = settings.model_copy(update={"password": current.password})
        await self.store.write_model(FLEXIBEE_SETTINGS_KEY, settings)
        self._log_operation("FlexiBee settings saved", url=settings.url, company=settings.company)
        return settings

    async def _merged_values(self) -> dict[str, str]:
        secrets = get_settings()
        stored = await self.get_settings()
        env_values = {
            "url": secrets.flexibee_url.strip(),
            "company": secrets.flexibee_company.strip(),
            "username": secrets.flexibee_username.strip(),
            "password": secrets.flexibee_password.strip(),
        }
        return {field: env_values[field] or getattr(stored, field) for field in _ENV_NAMES}

    async def resolve_config(self) -> FlexibeeConfig:
        """
        Effective connection settings.

        Raises:
            ConfigurationError: If the integration is off or a connection value is empty
        """
        if not get_app_config().features.flexibee_enabled:
            raise ConfigurationError(DISABLED_MESSAGE)
        values = await self._merged_values()
        if not all(values.values()):
            raise ConfigurationError(NOT_CONFIGURED_MESSAGE)
        return FlexibeeConfig(
            base_url=values["url"].rstrip("/"),
            company=values["company"],
            username=values["username"],
            password=values["password"],
        )

    async def status(self) -> dict[str, Any]:
        values = await self._merged_values()
        missing = [_ENV_NAMES[field] for field, value in values.items() if not value]
        return {"configured": not missing, "missing": missing}

    async def _request(self, method: str, url: str, config: FlexibeeConfig, **kwargs: Any) -> httpx.Response:
        timeout = get_app_config().channels.flexibee.request_timeout_seconds

        async def send(client: httpx.AsyncClient) -> httpx.Response:
            return await call_with_resilience(
                "flexibee",
                client.request,
                method,
                url,
                auth=config.auth,
                retry_on=(httpx.TransportError,),
                timeout=timeout,
                **kwargs,
            )

        try:
            if self._client is not None:
                return await send(self._client)
            async with httpx.AsyncClient(timeout=timeout) as client:
                return await send(client)
        except httpx.HTTPError as e:
            log_with_source(self._logger, "flexibee", "error", "FlexiBee request failed", url=url, error=str(e))
            raise ExternalServiceError(f"FlexiBee nedostupné: {e}") from e

    async def send_invoice(self, number: str) -> dict[str, Any]:
        """Create the invoice in FlexiBee. Returns the API response body."""
        invoice = await self.invoices.get_by_number(number)
        if invoice is None:
            raise NotFoundError("Faktúra neexistuje.")

        config = await self.resolve_config()
        payload = build_invoice_payload(invoice, get_app_config().channels.flexibee.invoice_text)
        response = await self._request("POST", f"{config.invoices_url}.json", config, json=payload)

        try:
            data = response.json()
        except ValueError:
            data = {"error": {"message": response.reason_phrase or "Neznáma chyba FlexiBee."}}

        api_error = _api_error(data)
        if response.is_error or api_error:
            log_with_source(
                self._logger,
                "flexibee",
                "warning",
                "FlexiBee rejected invoice",
                invoice_number=number,
                status_code=response.status_code,
                error=api_error,
            )
            raise ExternalServiceError(api_error or "FlexiBee API vrátilo chybu.")

        log_with_source(self._logger, "flexibee", "info", "Invoice sent to FlexiBee", invoice_number=number)
        return data

    async def test_connection(self) -> bool:
        config = await self.resolve_config()
        response = await self._request("GET", f"{config.invoices_url}.json", config, params={"limit": 1})
        if response.is_error:
            raise ExternalServiceError(f"Test zlyhal s kódom {response.status_code}.")
        return True

    async def download_isdoc(self, number: str) -> tuple[bytes, str]:
        """ISDOC export of an invoice as FlexiBee renders it, with a download file name."""
        config = await self.resolve_config()
        url = f"{config.invoices_url}/{quote(number, safe='')}.isdoc"
        response = await self._request("GET", url, config)
        if response.is_error:
            raise ExternalServiceError(f"FlexiBee ISDOC export zlyhal s kódom {response.status_code}.")
        return response.content, f"{number}.isdoc"
