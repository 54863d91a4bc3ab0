from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
import time
import structlog

from app.models import Subject
from app.routers import dashboard as dashboard_router
from app.routers import flashcards as flashcards_router
from app.routers import tests as tests_router
from app.notifications import manager, notify_clock
from app.providers import close_generator
from app.services.logging import configure_logging, log_api_request
from app.services.monitoring import health_checker, get_metrics, REQUEST_COUNT, REQUEST_DURATION
from app.services.sessions import registry
from app.middleware.rate_limit import limiter, rate_limit_exceeded_handler

# Configure logging
configure_logging()
logger = structlog.get_logger()

app = FastAPI(
    title="GED Prep",
    description="Timed GED practice tests and flashcards with generated content",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


# Add middleware for request logging and metrics
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()

    log_api_request(request)

    try:
        response = await call_next(request)
    except Exception as e:
        log_api_request(request, error=e)
        raise

    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code
    ).inc()

    REQUEST_DURATION.labels(
        method=request.method,
        endpoint=request.url.path
    ).observe(process_time)

    response.response_time = process_time
    log_api_request(request, response)

    return response


# ----------------- Health & Monitoring Endpoints -----------------
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return health_checker.get_health_status()


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return get_metrics()


@app.get("/")
def index():
    return {
        "name": "GED Prep",
        "subjects": [s.value for s in Subject],
        "tests": "/tests/configs",
        "flashcards": "/flashcards/decks",
        "dashboard": "/dashboard",
    }


# ----------------- Shutdown -----------------
@app.on_event("shutdown")
async def on_shutdown():
    await registry.shutdown()
    await close_generator()
    logger.info("shutdown_complete")


# ----------------- Routers -----------------
app.include_router(tests_router.router)
app.include_router(flashcards_router.router)
app.include_router(dashboard_router.router)


# ----------------- WebSocket -----------------
@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    session_id = websocket.query_params.get("session_id")
    session = registry.get_test(session_id) if session_id else None
    if not session:
        await websocket.close()
        return
    await manager.connect(session_id, websocket)
    # Send the current clock straight away
    await notify_clock(session)
    try:
        while True:
            # Keep connection alive; ignore incoming messages
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(session_id, websocket)
