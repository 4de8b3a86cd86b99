"""
Invoice API Endpoints.

Issuing invoices from orders, the invoice template and the ISDOC download.
All endpoints are admin-only.
"""

from fastapi import APIRouter, Response

from eshop.backend.core.dependencies import AdminUser, DbSession, RequestId
from eshop.backend.schemas.base import ApiResponse, ResponseMetadata
from eshop.backend.schemas.invoice import (
    GeneratedInvoice,
    InvoiceCreate,
    InvoiceListItem,
    InvoiceResponse,
)
from eshop.backend.schemas.settings import InvoiceTemplate
from eshop.backend.services.invoice import InvoiceService

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse[list[InvoiceListItem]],
    summary="List invoices",
)
async def list_invoices(
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[list[InvoiceListItem]]:
    invoices = await InvoiceService(db).list_invoices()
    return ApiResponse(
        data=[InvoiceListItem.model_validate(invoice) for invoice in invoices],
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.post(
    "",
    response_model=ApiResponse[GeneratedInvoice],
    status_code=201,
    summary="Issue an invoice for an order",
    description="VAT, dates and supplier come from the invoice template.",
)
async def create_invoice(
    data: InvoiceCreate,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[GeneratedInvoice]:
    invoice, template = await InvoiceService(db).generate_from_order(data.order_id, data.template_version)
    return ApiResponse(
        data=GeneratedInvoice(invoice=InvoiceResponse.model_validate(invoice), template=template),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.get(
    "/template",
    response_model=ApiResponse[InvoiceTemplate],
    summary="Get the invoice template",
)
async def get_template(
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[InvoiceTemplate]:
    template = await InvoiceService(db).get_template()
    return ApiResponse(data=template, metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/template",
    response_model=ApiResponse[InvoiceTemplate],
    summary="Save the invoice template",
)
async def save_template(
    data: InvoiceTemplate,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[InvoiceTemplate]:
    template = await InvoiceService(db).save_template(data)
    return ApiResponse(data=template, metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "/{number}",
    response_model=ApiResponse[InvoiceResponse],
    summary="Get an invoice",
)
async def get_invoice(
    number: str,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[InvoiceResponse]:
    invoice = await InvoiceService(db).get_invoice(number)
    return ApiResponse(
        data=InvoiceResponse.model_validate(invoice),
        metadata=ResponseMetadata(request_id=request_id),
    )


@router.get(
    "/{number}/document",
    summary="Download ISDOC",
    response_class=Response,
    responses={200: {"content": {"application/xml": {}}}},
)
async def download_document(
    number: str,
    db: DbSession,
    admin: AdminUser,
) -> Response:
    document = await InvoiceService(db).render_document(number)
    return Response(
        content=document,
        media_type="application/xml; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{number}.isdoc"'},
    )
