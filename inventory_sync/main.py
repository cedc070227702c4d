import logging
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from inventory_sync import errors
from inventory_sync.api import inventory_logs, products
from inventory_sync.config import settings
from inventory_sync.database import init_db

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("%s started", settings.APP_NAME)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    description="Product stock levels with an audited change history",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _failure(status_code: int, message: str, errors_=None, error: str | None = None) -> JSONResponse:
    content = {"success": False, "message": message}
    if errors_ is not None:
        content["errors"] = errors_
    if error and settings.DEBUG:
        content["error"] = error
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


@app.exception_handler(errors.InventoryError)
async def inventory_error_handler(request: Request, exc: errors.InventoryError):
    cause = exc.cause_message if isinstance(exc, errors.MutationFailedError) else None
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, cause)
    return _failure(exc.status_code, exc.message, exc.errors, cause)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _failure(422, "Validation failed", exc.errors())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _failure(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return JSON for unhandled exceptions so the admin panel can parse the error."""
    logger.error("Unhandled error: %s\n%s", exc, traceback.format_exc())
    return _failure(500, "Internal server error", error=str(exc))


app.include_router(products.router, prefix=settings.API_PREFIX)
app.include_router(inventory_logs.router, prefix=settings.API_PREFIX)


@app.get("/health")
@app.get(f"{settings.API_PREFIX}/health")
def health():
    return {
        "status": "OK",
        "message": f"{settings.APP_NAME} is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
