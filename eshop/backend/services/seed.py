"""
Seed Service.

Resets the catalog and orders to a known demo state: products from
data/products.json, default settings documents and three sample orders,
two of them invoiced.

Usage:
    async with session_scope() as session:
        summary = await SeedService(session).run(products_path)
"""

import json
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from eshop.backend.core.exceptions import ValidationError
from eshop.backend.models.catalog import UNCATEGORIZED, Category
from eshop.backend.repositories.catalog import (
    CategoryRepository,
    ProductRepository,
    SubCategoryRepository,
)
from eshop.backend.repositories.invoice import InvoiceRepository
from eshop.backend.repositories.order import OrderRepository
from eshop.backend.schemas.order import OrderCreate, OrderItemInput
from eshop.backend.schemas.settings import (
    ChatSettings,
    FlexibeeSettings,
    InvoiceTemplate,
    LinkSettings,
    MenuSettings,
    SiteSettings,
    VisualSettings,
    default_admin_menu,
)
from eshop.backend.services.base import BaseService
from eshop.backend.services.config_store import (
    CHAT_SETTINGS_KEY,
    FLEXIBEE_SETTINGS_KEY,
    INVOICE_TEMPLATE_KEY,
    SITE_LINKS_KEY,
    SITE_MENU_KEY,
    SITE_SETTINGS_KEY,
    SITE_VISUAL_KEY,
    ConfigStoreService,
)
from eshop.backend.services.invoice import InvoiceService
from eshop.backend.services.order import OrderService
from eshop.backend.services.site_settings import SiteSettingsService

_TRANSLATED_FIELDS = ("name", "tagline", "description", "promotion", "badge")


@dataclass
class SampleOrder:
    external_id: str
    customer_name: str
    company_id: str
    email: str
    payment_method: str
    assigned_to: str
    items: list[tuple[str, int, int]]
    history: list[tuple[str, str | None]]
    invoice_date: date | None = None


SAMPLE_ORDERS = [
    SampleOrder(
        external_id="OBJ-2025-001",
        customer_name="Inova Systems s.r.o.",
        company_id="SK1234567890",
        email="it@inovasystems.eu",
        payment_method="Faktúra 14 dní",
        assigned_to="NOC tím",
        items=[
            ("2PN FortiEdge X5", 1, 3490),
            ("2PN SwitchWave S4", 1, 1890),
            ("Pulse Monitoring 24/7", 1, 1490),
        ],
        history=[
            ("Prijatá", "objednávka vytvorená v e-shope"),
            ("Spracovanie", "rezervácia skladov, čaká na faktúru"),
        ],
        invoice_date=date(2025, 1, 12),
    ),
    SampleOrder(
        external_id="OBJ-2025-002",
        customer_name="TechNordic a.s.",
        company_id="CZ87654321",
        email="purchase@technordic.cz",
        payment_method="Faktúra 30 dní",
        assigned_to="Logistika",
        items=[("Nebula Edge Server", 1, 5590)],
        history=[
            ("Prijatá", None),
            ("Spracovanie", "synchronizované s ERP"),
            ("Expedovaná", "zásielka DPD #55231"),
        ],
        invoice_date=date(2025, 1, 11),
    ),
    SampleOrder(
        external_id="OBJ-2025-003",
        customer_name="RetailHub s.r.o.",
        company_id="SK9999999999",
        email="orders@retailhub.sk",
        payment_method="Faktúra 14 dní",
        assigned_to="Sales Support",
        items=[("SkyWiFi 6E Pro", 3, 890), ("Pulse Monitoring 24/7", 1, 80)],
        history=[("Prijatá", None)],
    ),
]


@dataclass
class SeedSummary:
    products: int = 0
    categories: int = 0
    orders: int = 0
    invoices: list[str] = field(default_factory=list)
    config_keys: list[str] = field(default_factory=list)


def load_product_file(path: Path) -> list[dict[str, Any]]:
    """
    Read the product list.

    Raises:
        ValidationError: If the file is not a JSON list of objects
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list) or not all(isinstance(entry, dict) for entry in data):
        raise ValidationError(f"Súbor {path.name} musí obsahovať zoznam produktov.")
    return data


def product_translations(entry: dict[str, Any]) -> dict[str, Any]:
    """`sk` and `cz` translations, both mirroring the base fields."""
    base = {name: entry.get(name) for name in _TRANSLATED_FIELDS}
    base["specs"] = list(entry.get("specs") or [])
    return {"sk": dict(base), "cz": dict(base)}


class SeedService(BaseService):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.products = ProductRepository(session)
        self.categories = CategoryRepository(session)
        self.subcategories = SubCategoryRepository(session)
        self.orders = OrderRepository(session)
        self.invoices = InvoiceRepository(session)
        self.store = ConfigStoreService(session)

    async def clear(self) -> None:
        """Delete invoices, orders, products and categories, in that order."""
        await self.invoices.delete_all()
        await self.orders.delete_all()
        await self.products.delete_all()
        await self.categories.delete_all()
        self._log_operation("Catalog and orders cleared")

    async def seed_products(self, entries: list[dict[str, Any]]) -> tuple[int, int]:
        """Create categories, subcategories and products. Returns (products, categories)."""
        categories: dict[str, Category] = {}
        created = 0

        for entry in entries:
            category_name = (entry.get("category") or "").strip() or UNCATEGORIZED
            if category_name not in categories:
                category = await self.categories.get_by_name(category_name)
                if category is None:
                    category = await self.categories.create(name=category_name)
                categories[category_name] = category
            category_id = categories[category_name].id

            sub_category_id = None
            sub_name = (entry.get("subCategory") or "").strip()
            if sub_name:
                sub_category = await self.subcategories.get_by_name(category_id, sub_name)
                if sub_category is None:
                    sub_category = await self.subcategories.create(name=sub_name, category_id=category_id)
                sub_category_id = sub_category.id

            image = entry.get("image")
            await self.products.create(
                slug=entry["slug"],
                name=entry["name"],
                tagline=entry.get("tagline"),
                description=entry.get("description"),
                price=Decimal(str(entry.get("price") or 0)),
                currency=entry.get("currency") or "EUR",
                badge=entry.get("badge"),
                promotion=entry.get("promotion"),
                billing_period=entry.get("billingPeriod"),
                image=image,
                gallery=[image] if image else [],
                specs=list(entry.get("specs") or []),
                translations=product_translations(entry),
                active=True,
                category_id=category_id,
                sub_category_id=sub_category_id,
            )
            created += 1

        # subcategory inserts do not reach the already loaded collections
        for category in categories.values():
            await self.session.refresh(category)

        self._log_operation("Products seeded", products=created, categories=len(categories))
        return created, len(categories)

    async def seed_config(self) -> list[str]:
        """Write every settings document with its defaults."""
        documents = {
            SITE_SETTINGS_KEY: SiteSettings(),
            SITE_VISUAL_KEY: VisualSettings(),
            SITE_LINKS_KEY: LinkSettings(),
            SITE_MENU_KEY: MenuSettings(),
            CHAT_SETTINGS_KEY: ChatSettings(),
            FLEXIBEE_SETTINGS_KEY: FlexibeeSettings(),
            INVOICE_TEMPLATE_KEY: InvoiceTemplate(),
        }
        for key, document in documents.items():
            await self.store.write_model(key, document)

        menu = await SiteSettingsService(self.session).save_admin_menu(
            [item.model_dump(mode="json", by_alias=True) for item in default_admin_menu()]
        )
        self._log_operation("Default settings written", documents=len(documents) + 1, admin_sections=len(menu))
        return [*documents, "admin-menu"]

    async def seed_orders(self) -> tuple[int, list[str]]:
        """Sample orders with their history. Orders with an invoice date get an invoice."""
        order_service = OrderService(self.session)
        invoice_service = InvoiceService(self.session)
        invoice_numbers: list[str] = []

        for sample in SAMPLE_ORDERS:
            first_status, first_note = sample.history[0]
            await order_service.create_order(
                OrderCreate(
                    external_id=sample.external_id,
                    customer_name=sample.customer_name,
                    email=sample.email,
                    company_id=sample.company_id,
                    status=first_status,
                    payment_method=sample.payment_method,
                    assigned_to=sample.assigned_to,
                    items=[
                        OrderItemInput(name=name, quantity=quantity, price=price)
                        for name, quantity, price in sample.items
                    ],
                ),
                history_note=first_note,
            )
            for status, note in sample.history[1:]:
                await order_service.update_status(sample.external_id, status, note)

            if sample.invoice_date is not None:
                invoice, _ = await invoice_service.generate_from_order(
                    sample.external_id, issue_date=sample.invoice_date
                )
                invoice_numbers.append(invoice.number)

        self._log_operation("Sample orders seeded", orders=len(SAMPLE_ORDERS), invoices=len(invoice_numbers))
        return len(SAMPLE_ORDERS), invoice_numbers

    async def run(self, products_path: Path) -> SeedSummary:
        entries = load_product_file(products_path)
        await self.clear()

        summary = SeedSummary()
        summary.products, summary.categories = await self.seed_products(entries)
        summary.config_keys = await self.seed_config()
        summary.orders, summary.invoices = await self.seed_orders()
        return summary
