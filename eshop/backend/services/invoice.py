"""
Invoice Service.

VAT arithmetic, invoice numbering and invoice issuing from orders.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from eshop.backend.core.exceptions import NotFoundError, ValidationError
from eshop.backend.core.utils import digits_only, round_money, utc_now
from eshop.backend.models.invoice import Invoice
from eshop.backend.repositories.invoice import InvoiceRepository
from eshop.backend.repositories.order import OrderRepository
from eshop.backend.schemas.settings import InvoiceTemplate
from eshop.backend.services.base import BaseService
from eshop.backend.services.config_store import INVOICE_TEMPLATE_KEY, ConfigStoreService
from eshop.backend.services.isdoc import render_isdoc

DEFAULT_VAT_RATE = Decimal("0.21")
VARIABLE_SYMBOL_LENGTH = 10


@dataclass(frozen=True)
class VatBreakdown:
    base: Decimal
    vat: Decimal
    total: Decimal


def calculate_vat(base: Decimal | float | int, rate: Decimal | float = DEFAULT_VAT_RATE) -> VatBreakdown:
    """
    VAT on a net amount.

    vat = round(base * rate, 2) and total = round(base + vat, 2), half up.
    """
    base_value = Decimal(str(base))
    vat = round_money(base_value * Decimal(str(rate)))
    return VatBreakdown(base=base_value, vat=vat, total=round_money(base_value + vat))


def build_invoice_number(sequence: int, year: int) -> str:
    """FA-{year}-{sequence padded to 5 digits}."""
    return f"FA-{year}-{sequence:05d}"


def build_variable_symbol(order_external_id: str, invoice_number: str) -> str:
    """First 10 digits of the order number, else the digits of the invoice number."""
    symbol = digits_only(order_external_id)[:VARIABLE_SYMBOL_LENGTH]
    return symbol or digits_only(invoice_number)[:VARIABLE_SYMBOL_LENGTH]


class InvoiceService(BaseService):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = InvoiceRepository(session)
        self.orders = OrderRepository(session)
        self.store = ConfigStoreService(session)

    async def get_template(self) -> InvoiceTemplate:
        return await self.store.read_model(INVOICE_TEMPLATE_KEY, InvoiceTemplate)

    async def save_template(self, template: InvoiceTemplate) -> InvoiceTemplate:
        if not template.supplier.name.strip() or not template.supplier.ico.strip():
            raise ValidationError("Vyplňte povinné údaje dodavatele.")
        await self.store.write_model(INVOICE_TEMPLATE_KEY, template)
        self._log_operation("Invoice template saved", supplier=template.supplier.name)
        return template

    async def generate_from_order(
        self,
        order_ref: str | None,
        template_version: str = "default",
        issue_date: date | None = None,
    ) -> tuple[Invoice, InvoiceTemplate]:
        """
        Issue and persist an invoice for an order.

        Dates, VAT rate, currency and supplier come from the invoice template.
        The order gets the invoice number.
        """
        if not order_ref or not order_ref.strip():
            raise ValidationError("Chýba ID objednávky.")

        order = await self.orders.get_by_reference(order_ref.strip())
        if order is None:
            raise NotFoundError("Objednávka sa nenašla.")

        template = await self.get_template()
        defaults = template.defaults
        issued = issue_date or utc_now().date()

        sequence = await self.repo.max_sequence(issued.year) + 1
        number = build_invoice_number(sequence, issued.year)
        vat = calculate_vat(order.total, defaults.vat_rate)
        company_id = order.company_id

        self._log_operation(
            "Issuing invoice",
            invoice_number=number,
            order=order.external_id,
            total=str(vat.total),
        )
        invoice = await self._execute_db_operation(
            "create_invoice",
            self.repo.create(
                number=number,
                issue_year=issued.year,
                sequence=sequence,
                variable_symbol=build_variable_symbol(order.external_id, number),
                supplier_name=template.supplier.name,
                supplier_ico=template.supplier.ico,
                supplier_dic=template.supplier.dic,
                supplier_vat_id=template.supplier.vat_id,
                supplier_address=template.supplier.address,
                customer_name=order.customer_name,
                customer_ico=company_id,
                customer_dic=company_id,
                customer_vat_id=company_id if company_id and company_id.upper().startswith("CZ") else None,
                customer_address=order.address or order.customer_name,
                issue_date=issued,
                due_date=issued + timedelta(days=defaults.due_days),
                supply_date=issued + timedelta(days=defaults.supply_days_offset),
                base_price=round_money(order.total),
                vat_rate=Decimal(str(defaults.vat_rate)),
                vat_value=vat.vat,
                total_price=vat.total,
                currency=defaults.currency,
                template_version=template_version or "default",
                order_id=order.id,
            ),
            conflict_message="Faktúra s týmto číslom už existuje.",
        )
        order.invoice_number = number
        await self.session.flush()
        self._log_debug("Invoice persisted", invoice_id=invoice.id)
        return invoice, template

    async def list_invoices(self) -> list[Invoice]:
        return await self.repo.list_recent()

    async def get_invoice(self, number: str) -> Invoice:
        invoice = await self.repo.get_by_number(number)
        if invoice is None:
            raise NotFoundError("Faktúra neexistuje.")
        return invoice

    async def render_document(self, number: str) -> bytes:
        """ISDOC XML for an issued invoice."""
        invoice = await self.get_invoice(number)
        template = await self.get_template()
        self._log_debug("Rendering ISDOC", invoice_number=number)
        return render_isdoc(invoice, template, invoice.order.items if invoice.order else [])
