"""
Main Entry Point - FastAPI Application
Progetto: Generatore Preventivi PDF

Configura l'applicazione FastAPI con middleware, router e lifecycle.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.exceptions import AppException
from app.schemas.preventivo import PdfErrorResponse
from app.services.preventivo_service import PreventivoService

settings = get_settings()

# ------------------------------------------------------------
# Configurazione Logging
# ------------------------------------------------------------
logging.basicConfig(
    level=settings.effective_log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_error_response(exc: Exception, code: str = "FUNCTION_INVOCATION_FAILED") -> JSONResponse:
    """
    Busta JSON di errore: { message, error, code, when }.

    Lo status è sempre 500, anche per NotFoundError.
    """
    if isinstance(exc, AppException):
        error, code = exc.detail, exc.error_code
    else:
        error = str(exc) or "Unknown"

    payload = PdfErrorResponse(
        message="Error generating PDF",
        error=error,
        code=code,
        when=datetime.now(timezone.utc),
    )
    return JSONResponse(status_code=500, content=payload.model_dump(mode="json"))


# ------------------------------------------------------------
# Lifespan Handler
# ------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gestisce il ciclo di vita dell'applicazione.

    - Startup: carica e valida il template, prepara gateway e renderer
    - Shutdown: chiude il client HTTP verso Airtable
    """
    # Startup
    logger.info(f"Avvio {settings.app_name} v{settings.app_version}")
    service = PreventivoService.from_settings(settings)
    service.recorder.init()
    app.state.preventivo_service = service
    logger.info("Applicazione avviata con successo")

    yield

    # Shutdown
    logger.info("Arresto applicazione in corso...")
    await service.aclose()
    logger.info("Applicazione arrestata")


# ------------------------------------------------------------
# FastAPI Application
# ------------------------------------------------------------
app = FastAPI(
    title=settings.app_name,
    description="Generazione dei preventivi PDF da Airtable",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# ------------------------------------------------------------
# Exception Handlers
# ------------------------------------------------------------
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Gestore per le eccezioni applicative.

    NotFoundError, UpstreamError, RenderError e ConfigurationError
    diventano tutte una risposta HTTP 500 con la busta JSON di errore.
    """
    logger.error("PDF ERROR [%s] %s", exc.error_code, exc.detail)
    return build_error_response(exc)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Gestore generico per tutte le eccezioni non catturate.

    Converte l'eccezione in risposta HTTP 500 e logga l'errore.
    """
    logger.error(
        f"Unhandled exception: {exc}",
        exc_info=True,
    )
    return build_error_response(exc)


# ------------------------------------------------------------
# Middleware CORS
# ------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------
@app.get(
    "/health",
    name="Health Check",
    summary="Controlla lo stato dell'applicazione",
    tags=["System"],
)
async def health_check() -> dict[str, str]:
    """
    Endpoint per il controllo dello stato di salute.

    Returns:
        dict: Stato dell'applicazione
    """
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.app_env,
    }


# ------------------------------------------------------------
# Router
# ------------------------------------------------------------
from app.api.v1 import api_v1_router, legacy_router

app.include_router(api_v1_router)
app.include_router(legacy_router)
