"""Project webhook endpoint.

External project-management systems report finished projects here. The
response bodies use an ``error`` key rather than FastAPI's ``detail`` so
existing integrations keep working.
"""

import json
import logging

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from payroll_tracker.api.dependencies import DbSession, WebhookAuthorized
from payroll_tracker.api.schemas import (
    ExistingPayout,
    PayoutResponse,
    ProjectWebhookRequest,
    ProjectWebhookResponse,
)
from payroll_tracker.calculators import PayoutValidationError
from payroll_tracker.services import DuplicatePayoutError, PayoutService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhook"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type, x-webhook-secret",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}


def _error(status_code: int, body: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=CORS_HEADERS)


@router.options("/project-webhook", include_in_schema=False)
async def project_webhook_preflight() -> Response:
    """Answer CORS preflight requests."""
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.api_route(
    "/project-webhook",
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def project_webhook_method_not_allowed() -> JSONResponse:
    """Only POST is accepted."""
    return _error(status.HTTP_405_METHOD_NOT_ALLOWED, {"error": "Method not allowed"})


@router.post(
    "/project-webhook",
    response_model=ProjectWebhookResponse,
    responses={400: {}, 401: {}, 409: {}, 500: {}},
)
async def project_webhook(
    request: Request,
    db: DbSession,
    authorized: WebhookAuthorized,
) -> JSONResponse:
    """Create ``auto`` payouts for a completed project."""
    if not authorized:
        logger.warning("Rejected webhook call with a missing or wrong secret")
        return _error(status.HTTP_401_UNAUTHORIZED, {"error": "Unauthorized"})

    try:
        raw = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error(status.HTTP_400_BAD_REQUEST, {"error": "Invalid JSON body"})

    logger.info("Received webhook payload: %s", raw)
    try:
        payload = ProjectWebhookRequest.model_validate(raw)
    except ValidationError:
        return _error(
            status.HTTP_400_BAD_REQUEST,
            {"error": PayoutValidationError.MISSING_FIELDS},
        )

    service = PayoutService(db)
    try:
        payouts = await service.process_project_webhook(
            project_value=payload.project_value,
            project_title=payload.project_title,
            employees_assigned=payload.employees_assigned,
            quoted_by_name=payload.quoted_by_name,
            first_time=payload.first_time,
            job_id=payload.job_id,
        )
        await db.commit()
    except PayoutValidationError as e:
        await db.rollback()
        return _error(status.HTTP_400_BAD_REQUEST, {"error": e.message})
    except DuplicatePayoutError as e:
        # Serialize before rollback expires the loaded rows.
        existing = [ExistingPayout.model_validate(p).model_dump(mode="json") for p in e.existing]
        await db.rollback()
        return _error(
            status.HTTP_409_CONFLICT,
            {"error": "Duplicate payouts", "message": str(e), "existing_payouts": existing},
        )
    except Exception as e:
        logger.exception("Error in project webhook")
        await db.rollback()
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, {"error": str(e)})

    body = ProjectWebhookResponse(
        message=f'Created {len(payouts)} payouts for project "{payload.project_title}"',
        payouts=[PayoutResponse.model_validate(p) for p in payouts],
    )
    return JSONResponse(content=body.model_dump(mode="json"), headers=CORS_HEADERS)
