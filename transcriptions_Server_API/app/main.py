# main.py
# Description: FastAPI application for the transcriptions sync server: sync API, public pages, health check.
#
# Imports
import logging
import sys
from contextlib import asynccontextmanager
#
# 3rd-party Libraries
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
#
# Local Imports
from transcriptions_Server_API.app.api.v1.API_Deps.Sync_Context_Deps import build_sync_context
from transcriptions_Server_API.app.core.config import ALLOWED_ORIGINS, settings
from transcriptions_Server_API.app.core.Rendering.Renderer import PageRenderer
#
# Sync Endpoint
from transcriptions_Server_API.app.api.v1.endpoints.transcriptions import router as transcriptions_router
#
# Public pages
from transcriptions_Server_API.app.api.v1.endpoints.pages import router as pages_router
#
########################################################################################################################
#
# Functions:


# --- Loguru Configuration with Intercept Handler ---
class InterceptHandler(logging.Handler):
    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


logger.remove()
logger.add(
    sys.stderr,
    level=settings["LOG_LEVEL"],
    format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
           "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    colorize=True,
)

for logger_name in ["uvicorn", "uvicorn.error", "uvicorn.access"]:
    mod_logger = logging.getLogger(logger_name)
    mod_logger.handlers = [InterceptHandler()]
    mod_logger.propagate = False


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.sync_context = build_sync_context(settings)
    app.state.page_renderer = PageRenderer()
    logger.info(f"Transcriptions DB ready at {app.state.sync_context.db.db_path_str}")
    yield
    logger.info("App Shutdown: Closing DB connection")
    app.state.sync_context.db.close_connection()


app = FastAPI(
    title="Transcriptions Sync API",
    version="0.1.0",
    description="Receives transcription records from a headless content source and serves them as pages",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS if ALLOWED_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Malformed requests are reported as 400 with the sync API's error shape
    logger.warning(f"Request validation failed on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST,
                        content={"status": "error", "message": "Malformed request"})


@app.get("/")
async def root():
    return {"message": "Transcriptions sync server is running"}


# Router for the sync API
app.include_router(transcriptions_router, prefix="/api/v1/transcriptions", tags=["transcriptions"])

# Router for the public list / detail pages
app.include_router(pages_router, prefix="/transcriptions", tags=["pages"])


# Health check
@app.get("/health")
async def health_check():
    return {"status": "healthy"}

#
## End of main.py
########################################################################################################################
