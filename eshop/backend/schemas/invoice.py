"""
Invoice Schemas.
"""

from datetime import date, datetime

from pydantic import AliasChoices, Field, computed_field

from eshop.backend.schemas.base import CamelModel
from eshop.backend.schemas.settings import InvoiceTemplate


class InvoiceCreate(CamelModel):
    order_id: str | None = Field(default=None, description="Order external number or id")
    template_version: str = "default"


class InvoiceResponse(CamelModel):
    id: str
    invoice_number: str = Field(
        validation_alias=AliasChoices("number", "invoiceNumber"),
        serialization_alias="invoiceNumber",
    )
    variable_symbol: str
    supplier_name: str
    supplier_ico: str
    supplier_dic: str | None = None
    supplier_vat_id: str | None = None
    supplier_address: str | None = None
    customer_name: str
    customer_ico: str | None = None
    customer_dic: str | None = None
    customer_vat_id: str | None = None
    customer_address: str | None = None
    issue_date: date
    due_date: date
    supply_date: date
    base_price: float
    vat_rate: float
    vat_value: float
    total_price: float
    currency: str
    order_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("order_external_id", "orderId"),
        serialization_alias="orderId",
    )
    template_version: str
    created_at: datetime


class InvoiceListItem(CamelModel):
    """Row in the admin invoice table."""

    invoice_number: str = Field(
        validation_alias=AliasChoices("number", "invoiceNumber"),
        serialization_alias="invoiceNumber",
    )
    variable_symbol: str
    customer: str = Field(
        validation_alias=AliasChoices("customer_name", "customer"),
        serialization_alias="customer",
    )
    issue_date: date
    due_date: date
    total: float = Field(
        validation_alias=AliasChoices("total_price", "total"),
        serialization_alias="total",
    )
    currency: str
    order_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("order_external_id", "orderId"),
        serialization_alias="orderId",
    )

    @computed_field
    @property
    def id(self) -> str:
        return f"INV-{self.invoice_number}"


class GeneratedInvoice(CamelModel):
    invoice: InvoiceResponse
    template: InvoiceTemplate
