"""
FlexiBee API Endpoints.

Admin-only access to the accounting integration.
"""

from typing import Any

from fastapi import APIRouter, Response

from eshop.backend.core.dependencies import AdminUser, DbSession, RequestId
from eshop.backend.schemas.base import ApiResponse, ResponseMetadata
from eshop.backend.schemas.flexibee import FlexibeeInvoiceRequest, FlexibeeStatus, FlexibeeTestResult
from eshop.backend.schemas.settings import FlexibeeSettings
from eshop.backend.services.flexibee import FlexibeeService, mask_settings

router = APIRouter()


@router.get(
    "/settings",
    response_model=ApiResponse[FlexibeeSettings],
    summary="Stored FlexiBee settings",
    description="The password is masked.",
)
async def get_settings(
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[FlexibeeSettings]:
    settings = await FlexibeeService(db).get_settings()
    return ApiResponse(data=mask_settings(settings), metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/settings",
    response_model=ApiResponse[FlexibeeSettings],
    summary="Save FlexiBee settings",
)
async def save_settings(
    data: FlexibeeSettings,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[FlexibeeSettings]:
    settings = await FlexibeeService(db).save_settings(data)
    return ApiResponse(data=mask_settings(settings), metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "/status",
    response_model=ApiResponse[FlexibeeStatus],
    summary="Configuration status",
)
async def get_status(
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[FlexibeeStatus]:
    status = await FlexibeeService(db).status()
    return ApiResponse(data=FlexibeeStatus(**status), metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/test",
    response_model=ApiResponse[FlexibeeTestResult],
    summary="Test the connection",
)
async def test_connection(
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[FlexibeeTestResult]:
    ok = await FlexibeeService(db).test_connection()
    return ApiResponse(data=FlexibeeTestResult(ok=ok), metadata=ResponseMetadata(request_id=request_id))


@router.post(
    "/invoices",
    response_model=ApiResponse[dict[str, Any]],
    summary="Send an invoice to FlexiBee",
)
async def send_invoice(
    data: FlexibeeInvoiceRequest,
    db: DbSession,
    request_id: RequestId,
    admin: AdminUser,
) -> ApiResponse[dict[str, Any]]:
    result = await FlexibeeService(db).send_invoice(data.invoice_number.strip())
    return ApiResponse(data=result, metadata=ResponseMetadata(request_id=request_id))


@router.get(
    "/invoices/{number}/isdoc",
    summary="Download the FlexiBee ISDOC export",
    response_class=Response,
)
async def download_isdoc(
    number: str,
    db: DbSession,
    admin: AdminUser,
) -> Response:
    content, filename = await FlexibeeService(db).download_isdoc(number)
    return Response(
        content=content,
        media_type="application/xml; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
