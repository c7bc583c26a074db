import logging
import time
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cards_backend.api.routes import admin, auth, cards
from cards_backend.config import Settings
from cards_backend.errors import CardPlatformError

# --- Logging (request ID, duration)
logging.basicConfig(level=Settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)

# FastAPI app config
app = FastAPI(
    title="Business Card Platform API",
    description="Backend API for creating, styling and sharing digital business cards.",
    version="1.0.0",
    openapi_tags=[
        {"name": "Authentication", "description": "User registration, login, profile and password"},
        {"name": "Cards", "description": "Create, update, share and delete cards"},
        {"name": "Admin", "description": "Platform-wide listing and moderation"},
    ]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=Settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(cards.router)
app.include_router(admin.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    rid = uuid.uuid4().hex[:8]
    t0 = time.perf_counter()
    response = await call_next(request)
    dt = int((time.perf_counter() - t0) * 1000)
    logger.info("rid=%s %s %s %s %dms", rid, request.method, request.url.path, response.status_code, dt)
    response.headers["X-Request-ID"] = rid
    return response


# Root Health Check
@app.get("/", summary="Health Check", tags=["General"])
def health_check():
    """Simple health check endpoint."""
    return {"message": "Healthy"}


@app.exception_handler(CardPlatformError)
def card_platform_error_handler(request, exc):
    if exc.status_code >= 500:
        logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )

@app.exception_handler(HTTPException)
def custom_http_exception_handler(request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )
