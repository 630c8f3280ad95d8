# app/api/v1/endpoints/pages.py
# Description: Public HTML pages. Grouped transcription list and single transcription view.
#
# Imports
from typing import Optional
#
# 3rd-party Libraries
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import HTMLResponse
from loguru import logger
#
# Local Imports
from transcriptions_Server_API.app.api.v1.API_Deps.Sync_Context_Deps import get_page_renderer, get_sync_context
from transcriptions_Server_API.app.core.Rendering.Listing import ListingService
from transcriptions_Server_API.app.core.Rendering.Renderer import PageRenderer
from transcriptions_Server_API.app.core.Sync.context import SyncContext
from transcriptions_Server_API.app.core.Sync.upsert_engine import UpsertEngine
#
#######################################################################################################################
#
# Functions:

router = APIRouter()


@router.get("", response_class=HTMLResponse, summary="Transcriptions grouped by maqam, composer or form")
async def list_transcriptions(
        groupby: Optional[str] = Query("maqam", description="maqam | composer | form"),
        context: SyncContext = Depends(get_sync_context),
        renderer: PageRenderer = Depends(get_page_renderer),
):
    groups = ListingService(context).grouped(groupby)
    return HTMLResponse(renderer.render_list(groups, groupby))


@router.get("/{slug}/", response_class=HTMLResponse, summary="Single transcription page")
async def show_transcription(
        slug: str,
        context: SyncContext = Depends(get_sync_context),
        renderer: PageRenderer = Depends(get_page_renderer),
):
    record = UpsertEngine(context).load_record_by_slug(slug)
    if record is None:
        logger.debug(f"No published transcription with slug '{slug}'")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transcription not found")
    return HTMLResponse(renderer.render_detail(record))

#
# End of pages.py
#######################################################################################################################
