"""
FastAPI routes for the DigiLocker verification bridge.
"""

from __future__ import annotations

import json
import logging
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse, RedirectResponse, Response
from pydantic import ValidationError

from docverify.core.errors import InputError, SessionNotFound, UpstreamError
from docverify.dependencies import (
    get_app_settings,
    get_digilocker_client,
    get_flow_controller,
    get_ocr_verification_service,
    get_status_aggregator,
)
from docverify.schemas import (
    AuthoritativeRecord,
    CallbackOutcome,
    DocumentType,
    FinalizeVerificationRequest,
    FinalizeVerificationResponse,
    InitiateResponse,
    LockerMatchReport,
    LockerMatchRequest,
    OAuthCallbackPayload,
    OcrVerificationResult,
    ResultSessionResponse,
    VerdictStatus,
)
from docverify.services.locker_flow import render_deep_link

router = APIRouter()
logger = logging.getLogger(__name__)

_DIGILOCKER = "/digilocker"


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get(f"{_DIGILOCKER}/initiate", response_model=InitiateResponse)
async def initiate_digilocker_flow(
    controller: Annotated[Any, Depends(get_flow_controller)],
    user_id: str | None = Query(default=None, alias="userId"),
    callback_url: str | None = Query(
        default=None,
        alias="callbackUrl",
        description="Deep link the callback should redirect to.",
    ),
) -> InitiateResponse:
    """Persist a PKCE session and return the DigiLocker consent URL."""
    try:
        auth_url = controller.initiate(user_id, callback_url)
    except InputError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc
    return InitiateResponse(auth_url=auth_url)


@router.get(f"{_DIGILOCKER}/callback")
async def handle_digilocker_callback(
    controller: Annotated[Any, Depends(get_flow_controller)],
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    error: str | None = Query(default=None),
    error_description: str | None = Query(default=None),
) -> RedirectResponse:
    """Finish the browser leg and bounce the user back into the mobile app."""
    outcome = await controller.callback(
        code=code,
        state=state,
        provider_error=error,
        provider_error_description=error_description,
    )
    logger.info(
        "DigiLocker callback finished with status=%s state=%s",
        outcome.status,
        outcome.flow_state,
    )
    return RedirectResponse(
        url=render_deep_link(outcome, controller.default_deep_link),
        status_code=HTTPStatus.FOUND,
    )


@router.post(f"{_DIGILOCKER}/exchange-token", response_model=CallbackOutcome)
async def exchange_digilocker_token(
    payload: OAuthCallbackPayload,
    controller: Annotated[Any, Depends(get_flow_controller)],
) -> CallbackOutcome:
    """Complete the exchange for clients that captured the code themselves."""
    try:
        return await controller.exchange(code=payload.code, state=payload.state)
    except InputError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc
    except SessionNotFound as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc)) from exc
    except UpstreamError as exc:
        logger.error("Token exchange failed: %s", exc)
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY, detail=f"Token exchange failed: {exc}"
        ) from exc


@router.get(f"{_DIGILOCKER}/session/{{session_id}}", response_model=ResultSessionResponse)
async def read_result_session(
    session_id: str,
    controller: Annotated[Any, Depends(get_flow_controller)],
) -> ResultSessionResponse:
    """Hand the completed locker fetch to the mobile client, once."""
    try:
        result = controller.read_result(session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc)) from exc
    return ResultSessionResponse(
        access_token=result.access_token, extracted_data=result.extracted_data
    )


@router.post(f"{_DIGILOCKER}/verify-match", response_model=LockerMatchReport)
async def verify_locker_match(
    payload: LockerMatchRequest,
    controller: Annotated[Any, Depends(get_flow_controller)],
) -> LockerMatchReport:
    try:
        return controller.match_locker_records(payload.user_id, payload.snapshot)
    except InputError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc


@router.post(f"{_DIGILOCKER}/verify-ocr", response_model=OcrVerificationResult)
async def verify_document_image(
    service: Annotated[Any, Depends(get_ocr_verification_service)],
    settings: Annotated[Any, Depends(get_app_settings)],
    document_image: UploadFile = File(..., alias="documentImage"),
    doc_type: str = Form(..., alias="docType"),
    digilocker_data: str = Form(..., alias="digilockerData"),
) -> OcrVerificationResult:
    """Check an uploaded photo against the numbers DigiLocker reported."""
    try:
        document_type = DocumentType(doc_type.upper())
    except ValueError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail=f"Unsupported docType: {doc_type}"
        ) from exc

    try:
        record = AuthoritativeRecord.model_validate(json.loads(digilocker_data))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="digilockerData must be a JSON object."
        ) from exc

    image_bytes = await document_image.read(settings.max_upload_bytes + 1)
    if len(image_bytes) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=HTTPStatus.REQUEST_ENTITY_TOO_LARGE,
            detail="Uploaded image exceeds the size limit.",
        )

    result = await service.verify_document(image_bytes, document_type, record)
    if result.status is VerdictStatus.FAILED:
        logger.info("Document %s failed verification: %s", document_type.value, result.reason)
    return result


@router.post(
    f"{_DIGILOCKER}/finalize-verification", response_model=FinalizeVerificationResponse
)
async def finalize_verification(
    payload: FinalizeVerificationRequest,
    aggregator: Annotated[Any, Depends(get_status_aggregator)],
) -> FinalizeVerificationResponse:
    try:
        return aggregator.finalize(payload.user_id, payload.status, payload.detailed_status)
    except InputError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc


def _bearer_token(authorization: str | None) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED, detail="Access token required"
        )
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED, detail="Access token required"
        )
    return token


def _relay_upstream(exc: UpstreamError, fallback: str) -> JSONResponse:
    status_code = exc.status_code or HTTPStatus.BAD_GATEWAY
    return JSONResponse(status_code=status_code, content={"error": fallback, "detail": str(exc)})


@router.get(f"{_DIGILOCKER}/issued-files")
async def list_issued_files(
    client: Annotated[Any, Depends(get_digilocker_client)],
    authorization: str | None = Header(default=None),
) -> Any:
    """Proxy the DigiLocker issued-files listing for a caller-held token."""
    access_token = _bearer_token(authorization)
    try:
        return await client.fetch_issued_files_raw(access_token)
    except UpstreamError as exc:
        logger.warning("Issued-files pass-through failed: %s", exc)
        return _relay_upstream(exc, "Failed to fetch issued files")


@router.get(f"{_DIGILOCKER}/eaadhaar")
async def fetch_eaadhaar(
    client: Annotated[Any, Depends(get_digilocker_client)],
    authorization: str | None = Header(default=None),
) -> Response:
    """Proxy the e-Aadhaar XML for a caller-held token."""
    access_token = _bearer_token(authorization)
    try:
        xml = await client.fetch_eaadhaar(access_token)
    except UpstreamError as exc:
        logger.warning("e-Aadhaar pass-through failed: %s", exc)
        return _relay_upstream(exc, "Failed to fetch E-Aadhaar")
    return Response(content=xml, media_type="application/xml")


__all__ = ["router"]
