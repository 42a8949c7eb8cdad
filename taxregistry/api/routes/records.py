"""Taxpayer record routes.

Routes are thin: they build a ``TaxpayerService`` for the request session and
translate its ``OperationResult`` into a response. Expected failures keep the
result body and get the status mapped from their error kind.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query, Request, status
from fastapi.responses import Response

from taxregistry.api.constants import ERROR_STATUS_CODES
from taxregistry.api.schemas.records import VerificationView
from taxregistry.api.utils.responses import ORJSONResponse
from taxregistry.core.exceptions import ErrorKind
from taxregistry.infrastructure.database.dependencies import DatabaseSession
from taxregistry.records.documents import DocumentRenderer, DocumentTemplate
from taxregistry.records.schemas import OperationResult
from taxregistry.records.service import TaxpayerService

router = APIRouter(tags=["records"])


def get_taxpayer_service(
    request: Request, session: DatabaseSession
) -> TaxpayerService:
    """Build the record service for the current request."""
    state = request.app.state
    return TaxpayerService(
        session,
        state.settings,
        clock=state.clock,
        revalidator=state.revalidator,
    )


def get_renderer(request: Request) -> DocumentRenderer:
    renderer: DocumentRenderer = request.app.state.renderer
    return renderer


Service = Annotated[TaxpayerService, Depends(get_taxpayer_service)]
Renderer = Annotated[DocumentRenderer, Depends(get_renderer)]
Payload = Annotated[dict[str, Any], Body()]


def result_response(
    result: OperationResult, success_status: int = status.HTTP_200_OK
) -> ORJSONResponse:
    """Respond with an operation result, mapping failures to their status."""
    if result.success:
        status_code = success_status
    else:
        kind = result.error_kind or ErrorKind.INTERNAL_ERROR
        status_code = ERROR_STATUS_CODES[kind]
    return ORJSONResponse(status_code=status_code, content=result)


@router.post("/records")
async def create_record(payload: Payload, service: Service) -> ORJSONResponse:
    """Create a taxpayer record, generating identifiers that are not supplied."""
    result = await service.create_record(payload)
    return result_response(result, status.HTTP_201_CREATED)


@router.get("/records")
async def list_records(
    service: Service,
    page: int = 1,
    limit: int | None = None,
    search: str | None = None,
    revenue: str | None = None,
    platform: str | None = None,
    record_status: Annotated[str | None, Query(alias="status")] = None,
    min_amount: Annotated[str | None, Query(alias="minAmount")] = None,
    max_amount: Annotated[str | None, Query(alias="maxAmount")] = None,
    start_date: Annotated[str | None, Query(alias="startDate")] = None,
    end_date: Annotated[str | None, Query(alias="endDate")] = None,
    year: str | None = None,
) -> ORJSONResponse:
    """List a page of records with summary statistics and available filters.

    Filter values are passed through untouched; the service reports values it
    cannot parse as validation errors.
    """
    filters = {
        "revenue": revenue,
        "platform": platform,
        "status": record_status,
        "minAmount": min_amount,
        "maxAmount": max_amount,
        "startDate": start_date,
        "endDate": end_date,
        "year": year,
    }
    result = await service.list_records(
        page=page,
        limit=limit,
        search=search,
        filters={key: value for key, value in filters.items() if value is not None},
    )
    return result_response(result)


@router.get("/records/{record_id}")
async def get_record(record_id: str, service: Service) -> ORJSONResponse:
    return result_response(await service.get_record(record_id))


@router.put("/records/{record_id}")
async def update_record(
    record_id: str, payload: Payload, service: Service
) -> ORJSONResponse:
    """Replace a record; a submitted ``incomeLedger`` replaces the whole ledger."""
    return result_response(await service.update_record(record_id, payload))


@router.delete("/records/{record_id}")
async def delete_record(record_id: str, service: Service) -> ORJSONResponse:
    return result_response(await service.delete_record(record_id))


@router.get("/records/{record_id}/documents/{template}")
async def render_document(
    record_id: str,
    template: DocumentTemplate,
    service: Service,
    renderer: Renderer,
) -> Response:
    """Render a certificate, receipt or payment slip.

    Registry errors propagate to the exception handlers; renderer errors
    surface as internal errors.
    """
    content = await service.render_document(record_id, template, renderer)
    return Response(content=content, media_type=renderer.media_type)


@router.get("/verify/{record_id}")
async def verify_record(record_id: str, service: Service) -> ORJSONResponse:
    """Public verification of a certificate by its record id."""
    result = await service.get_record(record_id)
    if result.success:
        result = result.model_copy(
            update={
                "message": "Certificate verified",
                "data": VerificationView.from_view(result.data),
            }
        )
    return result_response(result)
