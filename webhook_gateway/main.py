"""
FastAPI application main module.
Wires the callback routers, the shared outbound HTTP session, request
logging middleware and error handlers.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
import aiohttp
from contextlib import asynccontextmanager
from webhook_gateway.api.callbacks import callback_router
from webhook_gateway.config import (
    LOG_FILE,
    LOG_LEVEL,
    MIDTRANS_SETTINGS,
    RUNTIME_ENVIRONMENT,
    SERVICE_NAME,
    SHOPTREE_SETTINGS,
    VERSION,
)
from webhook_gateway.integrations.midtrans import MidtransStatusClient, TransactionLookupRegistry
from webhook_gateway.integrations.storefront_rpc import (
    InventoryServiceClient,
    OrderServiceClient,
    StorefrontRPCChannel,
    TaskServiceClient,
)
from webhook_gateway.services.payment_reconciler import PaymentReconciler
from webhook_gateway.utils import setup_logging, get_logger
from webhook_gateway.utils.observability import ensure_request_id, REQUEST_ID_HEADER
from webhook_gateway.utils.task_lock import TaskLease

# Setup logging before creating the app
setup_logging(
    log_level=LOG_LEVEL,
    log_file=LOG_FILE,
    enable_console=True
)

logger = get_logger(__name__)


def init_components(app: FastAPI, session: aiohttp.ClientSession) -> None:
    """Build the long-lived clients and store them on ``app.state``.

    Raises:
        RuntimeError: if a required callback secret is not configured.
    """
    server_key = str(MIDTRANS_SETTINGS["server_key"])
    if not server_key:
        raise RuntimeError("failed to initialize midtrans handler: server key not found")
    if not SHOPTREE_SETTINGS["auth_key"]:
        raise RuntimeError("failed to initialize shoptree handler: auth key not found")

    channel = StorefrontRPCChannel(session)
    app.state.task_service = TaskServiceClient(channel)
    app.state.order_service = OrderServiceClient(channel)
    app.state.inventory_service = InventoryServiceClient(channel)

    lookups = TransactionLookupRegistry.for_client(MidtransStatusClient(session, server_key=server_key))
    app.state.task_lease = TaskLease()
    app.state.payment_reconciler = PaymentReconciler(
        server_key=server_key,
        lookups=lookups,
        task_service=app.state.task_service,
        order_service=app.state.order_service,
        lease=app.state.task_lease,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Opens the shared outbound session on startup and closes it on shutdown.
    """
    logger.info("Application startup initiated", environment=RUNTIME_ENVIRONMENT, version=VERSION)
    session = aiohttp.ClientSession()
    try:
        init_components(app, session)
        logger.info(
            "Callback handlers initialized",
            task_lease_backend=app.state.task_lease.backend,
        )
        yield
    except Exception as e:
        logger.error("Application startup failed", error=str(e), exc_info=True)
        raise
    finally:
        logger.info("Application shutdown initiated")
        lease = getattr(app.state, "task_lease", None)
        if lease is not None:
            await lease.close()
        await session.close()
        logger.info("Application shutdown completed")


app = FastAPI(
    title="Storefront Callback Gateway",
    description="""
    Receives callbacks from third-party integrations and forwards them to the
    internal order, task and inventory services.

    ## Integrations
    * **Midtrans** - payment notifications (`/midtrans/transaction-update`)
    * **MileApp** - picking/packing/shipping/delivery task status (`/mileapp/status/{task_type}`)
    * **Shoptree** - stock levels and product availability (`/shoptree/...`)
    """,
    version=VERSION,
    lifespan=lifespan,
)

# Request ID and request/response logging middleware
@app.middleware("http")
async def add_request_context_and_logging(request: Request, call_next):
    """
    Add request ID, timing, and request/response logging.
    """
    request_id = ensure_request_id(request.headers)
    request.state.request_id = request_id
    start_time = time.time()

    logger.info(
        "Request started",
        method=request.method,
        path=request.url.path,
        user_agent=request.headers.get("User-Agent"),
        remote_addr=request.client.host if request.client else "unknown",
        request_id=request_id
    )

    response = await call_next(request)

    process_time = time.time() - start_time
    response.headers[REQUEST_ID_HEADER] = request_id
    response.headers["X-Process-Time"] = str(round(process_time * 1000, 2))

    logger.info(
        "Request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        process_time_ms=round(process_time * 1000, 2),
        request_id=request_id
    )

    return response

# Custom exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors as bad requests."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.warning(
        "Request validation failed",
        errors=exc.errors(),
        request_id=request_id,
        path=request.url.path,
        method=request.method
    )

    return JSONResponse(
        status_code=400,
        content={"message": "invalid request data"}
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions (404, 405, ...)."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.warning(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        request_id=request_id,
        path=request.url.path,
        method=request.method
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    request_id = getattr(request.state, "request_id", "unknown")

    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        request_id=request_id,
        path=request.url.path,
        method=request.method,
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={"message": "internal server error"}
    )

@app.get("/health", tags=["health"], summary="Basic health check")
async def health_check():
    """Basic health check endpoint for load balancers."""
    lease = getattr(app.state, "task_lease", None)
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": VERSION,
        "environment": RUNTIME_ENVIRONMENT,
        "timestamp": time.time(),
        "task_lease_backend": lease.backend if lease is not None else "uninitialized",
    }

@app.get("/", tags=["root"], response_class=PlainTextResponse)
async def root():
    """Fallback banner with service name and version."""
    return f"{SERVICE_NAME} at version, {VERSION}"

app.include_router(callback_router)

# Development server configuration
if __name__ == "__main__":
    import os
    import uvicorn

    logger.info("Starting development server")

    uvicorn.run(
        "webhook_gateway.main:app",
        host="0.0.0.0",
        port=int(os.getenv("SERVER_PORT", "8000")),
        reload=RUNTIME_ENVIRONMENT == "development",
        log_level="info",
        access_log=True
    )
