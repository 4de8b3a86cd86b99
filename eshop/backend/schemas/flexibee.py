"""
FlexiBee Schemas.
"""

from pydantic import Field

from eshop.backend.schemas.base import CamelModel


class FlexibeeStatus(CamelModel):
    configured: bool
    missing: list[str] = Field(default_factory=list)


class FlexibeeInvoiceRequest(CamelModel):
    invoice_number: str = Field(..., min_length=1)


class FlexibeeTestResult(CamelModel):
    ok: bool
