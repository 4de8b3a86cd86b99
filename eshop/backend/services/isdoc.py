"""
ISDOC export.

Renders an issued invoice as an ISDOC 6 XML document (UBL-style cbc/cac
elements, invoice lines in the ISDOC invoice namespace).
"""

import xml.etree.ElementTree as ET
from collections.abc import Sequence
from decimal import Decimal

from eshop.backend.core.utils import round_money
from eshop.backend.models.invoice import Invoice
from eshop.backend.models.order import OrderItem
from eshop.backend.schemas.settings import InvoiceTemplate

ISDOC_NS = "urn:cz:isdoc:invoice:1"
CBC_NS = "urn:oasis:names:specification:ubl:schema:xsd:CommonBasicComponents-2"
CAC_NS = "urn:oasis:names:specification:ubl:schema:xsd:CommonAggregateComponents-2"

SUPPLIER_COUNTRY = "Česká republika"
EMPTY_LINE_DESCRIPTION = "Bez položiek"

ET.register_namespace("", ISDOC_NS)
ET.register_namespace("cbc", CBC_NS)
ET.register_namespace("cac", CAC_NS)


def _cbc(name: str) -> str:
    return f"{{{CBC_NS}}}{name}"


def _cac(name: str) -> str:
    return f"{{{CAC_NS}}}{name}"


def format_amount(value: Decimal | float | int) -> str:
    return f"{round_money(value):.2f}"


def _text(parent: ET.Element, tag: str, value: object | None, **attrib: str) -> ET.Element:
    element = ET.SubElement(parent, tag, attrib)
    element.text = "" if value is None else str(value)
    return element


def _amount(parent: ET.Element, tag: str, value: Decimal | float | int, currency: str) -> ET.Element:
    return _text(parent, tag, format_amount(value), currencyID=currency)


def _party(parent: ET.Element, tag: str, name: str, company_id: str | None, tax_id: str | None) -> ET.Element:
    party = ET.SubElement(ET.SubElement(parent, tag), _cac("Party"))
    _text(party, _cbc("Name"), name)
    _text(party, _cac("CompanyID"), company_id)
    _text(party, _cbc("ID"), tax_id)
    return party


def build_isdoc(invoice: Invoice, template: InvoiceTemplate, items: Sequence[OrderItem]) -> ET.Element:
    """Build the ISDOC element tree for an invoice and its order items."""
    currency = invoice.currency
    root = ET.Element(f"{{{ISDOC_NS}}}Invoice", {"version": "6.0.1"})

    _text(root, _cbc("ID"), invoice.number)
    _text(root, _cbc("UUID"), invoice.variable_symbol or invoice.number)
    _text(root, _cbc("IssueDate"), invoice.issue_date.isoformat())
    _text(root, _cbc("DueDate"), invoice.due_date.isoformat())
    _text(root, _cbc("TaxPointDate"), invoice.supply_date.isoformat())
    _text(root, _cbc("DocumentCurrencyCode"), currency)
    _text(root, _cbc("Note"), template.phrases.legal_note)

    supplier = _party(
        root,
        _cac("AccountingSupplierParty"),
        invoice.supplier_name,
        invoice.supplier_ico,
        invoice.supplier_dic,
    )
    _text(supplier, _cbc("AdditionalAccountID"), invoice.supplier_vat_id)
    address = ET.SubElement(supplier, _cac("PostalAddress"))
    _text(address, _cbc("StreetName"), invoice.supplier_address)
    _text(address, _cbc("Country"), SUPPLIER_COUNTRY)

    _party(
        root,
        _cac("AccountingCustomerParty"),
        invoice.customer_name,
        invoice.customer_ico,
        invoice.customer_dic,
    )

    tax_total = ET.SubElement(root, _cac("TaxTotal"))
    _amount(tax_total, _cbc("TaxAmount"), invoice.vat_value, currency)
    subtotal = ET.SubElement(tax_total, _cac("TaxSubtotal"))
    _amount(subtotal, _cbc("TaxableAmount"), invoice.base_price, currency)
    _amount(subtotal, _cbc("TaxAmount"), invoice.vat_value, currency)
    category = ET.SubElement(subtotal, _cac("TaxCategory"))
    _text(category, _cbc("Percent"), format_amount(Decimal(str(invoice.vat_rate)) * 100))

    monetary = ET.SubElement(root, _cac("LegalMonetaryTotal"))
    _amount(monetary, _cbc("LineExtensionAmount"), invoice.base_price, currency)
    _amount(monetary, _cbc("TaxExclusiveAmount"), invoice.base_price, currency)
    _amount(monetary, _cbc("TaxInclusiveAmount"), invoice.total_price, currency)
    _amount(monetary, _cbc("PayableAmount"), invoice.total_price, currency)

    lines = [(item.name, item.quantity, Decimal(item.price)) for item in items]
    if not lines:
        lines = [(EMPTY_LINE_DESCRIPTION, 0, Decimal("0"))]

    for index, (name, quantity, price) in enumerate(lines, start=1):
        line = ET.SubElement(root, f"{{{ISDOC_NS}}}InvoiceLine")
        _text(line, _cbc("ID"), index)
        _text(line, _cbc("InvoicedQuantity"), quantity, unitCode="EA")
        _amount(line, _cbc("LineExtensionAmount"), price * quantity, currency)
        _text(ET.SubElement(line, _cac("Item")), _cbc("Description"), name)
        _amount(ET.SubElement(line, _cac("Price")), _cbc("PriceAmount"), price, currency)

    return root


def render_isdoc(invoice: Invoice, template: InvoiceTemplate, items: Sequence[OrderItem]) -> bytes:
    """Serialized ISDOC document, UTF-8 with an XML declaration."""
    return ET.tostring(build_isdoc(invoice, template, items), encoding="utf-8", xml_declaration=True)
