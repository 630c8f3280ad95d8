# Sync_Context_Deps.py
# Description: FastAPI dependencies handing endpoints the application context and page renderer.
#
# Imports
import threading
#
# 3rd-party Libraries
from fastapi import Request
from loguru import logger
#
# Local Imports
from transcriptions_Server_API.app.core.config import SERVER_CLIENT_ID, settings
from transcriptions_Server_API.app.core.DB_Management.Transcriptions_DB import TranscriptionsDB
from transcriptions_Server_API.app.core.Rendering.Renderer import PageRenderer
from transcriptions_Server_API.app.core.Sync.context import SyncContext
#
#######################################################################################################################

_context_lock = threading.Lock()


def build_sync_context(app_settings=None) -> SyncContext:
    app_settings = app_settings or settings
    db = TranscriptionsDB(app_settings["TRANSCRIPTIONS_DB_PATH"], SERVER_CLIENT_ID)
    return SyncContext(
        db=db,
        site_base_url=app_settings["SITE_BASE_URL"],
        listing_cache_ttl=app_settings["LISTING_CACHE_TTL"],
        listing_cache_maxsize=app_settings["LISTING_CACHE_MAXSIZE"],
    )


def get_sync_context(request: Request) -> SyncContext:
    """The context built at startup; created on first use when the app runs without its lifespan."""
    context = getattr(request.app.state, "sync_context", None)
    if context is not None:
        return context
    with _context_lock:
        context = getattr(request.app.state, "sync_context", None)
        if context is None:
            logger.info("No sync context on app state; building one from settings")
            context = build_sync_context()
            request.app.state.sync_context = context
    return context


def get_page_renderer(request: Request) -> PageRenderer:
    renderer = getattr(request.app.state, "page_renderer", None)
    if renderer is None:
        renderer = PageRenderer()
        request.app.state.page_renderer = renderer
    return renderer

#
# End of Sync_Context_Deps.py
#######################################################################################################################
