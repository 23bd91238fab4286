import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.app.api.v1.router import router as v1_router
from backend.app.core.config import get_settings
from backend.app.core.logging_config import configure_logging
from backend.services.errors import ServiceError

configure_logging(get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Kikiks Inventory", version="0.1.0")
app.include_router(v1_router, prefix="/v1")


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
