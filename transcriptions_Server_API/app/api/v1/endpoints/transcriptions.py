# app/api/v1/endpoints/transcriptions.py
# Description: Sync API. Create-or-update, update, fetch and delete transcription records by external id.
#
# Imports
import json
from typing import Any
#
# 3rd-party Libraries
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
#
# Local Imports
from transcriptions_Server_API.app.api.v1.API_Deps.Sync_Context_Deps import get_sync_context
from transcriptions_Server_API.app.api.v1.schemas.transcriptions_schemas import (
    EntryDeletedResponse,
    EntryGetResponse,
    EntryListResponse,
    EntryRequest,
    EntryWriteResponse,
    ErrorResponse,
)
from transcriptions_Server_API.app.core.AuthNZ.User_DB_Handling import User, can_edit_content, get_request_user
from transcriptions_Server_API.app.core.Sync.context import SyncContext
from transcriptions_Server_API.app.core.Sync.endpoint_protocol import SyncEndpointProtocol
from transcriptions_Server_API.app.core.Sync.models import SyncResponse
#
#######################################################################################################################
#
# Functions:

router = APIRouter()

# Marker for a body that is present but not valid JSON; fails the "JSON object" check downstream
MALFORMED_BODY = "<malformed json>"

_ENTRY_BODY_DOC = {
    "requestBody": {
        "required": True,
        "content": {"application/json": {"schema": EntryRequest.model_json_schema()}},
    }
}

_ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_401_UNAUTHORIZED: {"description": "Missing or invalid X-API-KEY"},
    status.HTTP_403_FORBIDDEN: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


async def _read_json_body(request: Request) -> Any:
    # The body is parsed here rather than by a pydantic parameter so the
    # capability check runs before any body validation.
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning(f"Unparseable JSON body on {request.method} {request.url.path}")
        return MALFORMED_BODY


def _protocol(context: SyncContext, user: User, request: Request) -> SyncEndpointProtocol:
    context.on_request_received(request.method, request.url.path, user)
    return SyncEndpointProtocol(context, lambda: can_edit_content(user))


def _to_json_response(result: SyncResponse) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=result.body)


@router.post(
    "/entry",
    summary="Create or update a transcription keyed by externalId",
    response_model=EntryWriteResponse,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_200_OK: {"model": EntryWriteResponse}, **_ERROR_RESPONSES},
    openapi_extra=_ENTRY_BODY_DOC,
)
async def create_or_update_entry(
        request: Request,
        user: User = Depends(get_request_user),
        context: SyncContext = Depends(get_sync_context),
):
    body = await _read_json_body(request)
    return _to_json_response(_protocol(context, user, request).create_or_update(body))


@router.get(
    "/entries",
    summary="List every synced transcription",
    response_model=EntryListResponse,
    responses=_ERROR_RESPONSES,
)
async def list_entries(
        request: Request,
        user: User = Depends(get_request_user),
        context: SyncContext = Depends(get_sync_context),
):
    return _to_json_response(_protocol(context, user, request).list_all())


@router.put(
    "/entry/{external_id}",
    summary="Update an existing transcription; the path externalId wins over the body",
    response_model=EntryWriteResponse,
    responses=_ERROR_RESPONSES,
    openapi_extra=_ENTRY_BODY_DOC,
)
async def update_entry(
        external_id: str,
        request: Request,
        user: User = Depends(get_request_user),
        context: SyncContext = Depends(get_sync_context),
):
    body = await _read_json_body(request)
    return _to_json_response(_protocol(context, user, request).update_by_id(external_id, body))


@router.get(
    "/entry/{external_id}",
    summary="Fetch a transcription with its full field set",
    response_model=EntryGetResponse,
    responses=_ERROR_RESPONSES,
)
async def get_entry(
        external_id: str,
        request: Request,
        user: User = Depends(get_request_user),
        context: SyncContext = Depends(get_sync_context),
):
    return _to_json_response(_protocol(context, user, request).get_by_id(external_id))


@router.delete(
    "/entry/{external_id}",
    summary="Permanently delete a transcription and all its fields",
    response_model=EntryDeletedResponse,
    responses=_ERROR_RESPONSES,
)
async def delete_entry(
        external_id: str,
        request: Request,
        user: User = Depends(get_request_user),
        context: SyncContext = Depends(get_sync_context),
):
    return _to_json_response(_protocol(context, user, request).delete_by_id(external_id))

#
# End of transcriptions.py
#######################################################################################################################
