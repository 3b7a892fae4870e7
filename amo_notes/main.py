# amo_notes/main.py
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from amo_notes.core.config import get_settings
from amo_notes.core.logger import configure_logging, logger
from amo_notes.routers import amo
from amo_notes.utils.errors import (
    AmoError, HttpStatusError, TokenFileError, TransportError
)
from amo_notes.utils.responses import format_error_response


app = FastAPI(
    title="amoCRM Audit Notes",
    version="0.1.0",
    description="Turns amoCRM webhooks into audit notes on leads",
)


# ✅ Startup: fail fast on missing config
@app.on_event("startup")
async def startup():
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    logger.info("amoCRM audit notes service is live.")

# ✅ Health check
@app.get("/", tags=["root"], summary="Health check")
async def root():
    return {"status": "ok", "service": "amoCRM Audit Notes"}


def status_for(exc: AmoError) -> int:
    if isinstance(exc, (HttpStatusError, TransportError)):
        return 502
    if isinstance(exc, TokenFileError):
        return 503
    return 500

# ✅ Error handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=format_error_response(exc, status_code=exc.status_code),
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=format_error_response(exc, status_code=422),
    )

@app.exception_handler(AmoError)
async def amo_exception_handler(request: Request, exc: AmoError):
    status_code = status_for(exc)
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content=format_error_response(exc, status_code=status_code),
    )

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    return JSONResponse(
        status_code=500,
        content=format_error_response(exc),
    )

# ✅ Routes
app.include_router(amo.router)
