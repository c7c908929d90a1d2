"""
kondate: FastAPI backend for household meal planning.

Run with: uvicorn kondate.main:app --reload

- Meal plans per day, built from recipes and reusable daily sets
- Shopping drafts generated from the next days' plans, checked against the fridge
- Shopping list with history, synced into fridge lots with expiry estimates
- Background jobs for expiry alerts and stale draft archiving
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kondate.config import get_settings
from kondate.errors import BatchWriteError, KondateError
from kondate.api import health, cron
from kondate.api import expiration as expiration_api
from kondate.api import fridge as fridge_api
from kondate.api import recipes as recipes_api
from kondate.api import planning as planning_api
from kondate.api import shopping as shopping_api
from kondate.jobs.scheduler import start_scheduler, shutdown_scheduler
from kondate.services.healthcheck import VERSION

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reachable without X-API-Key; the cron router has its own secret
OPEN_PATHS = {"/", "/docs", "/openapi.json", "/redoc"}
OPEN_PREFIXES = ("/health", "/api/cron")

SECTIONS = {
    "health": "/health",
    "expiration": "/api/expiration",
    "fridge": "/api/fridge",
    "recipes": "/api/recipes",
    "planning": "/api/planning",
    "shopping": "/api/shopping",
    "cron": "/api/cron",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting kondate backend ({settings.environment}, tz={settings.timezone})")
    start_scheduler()
    yield
    logger.info("Shutting down kondate backend...")
    shutdown_scheduler()


app = FastAPI(
    title="kondate",
    description="Meal planning, shopping list & fridge inventory API",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if not settings.is_production else ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _is_open(path: str) -> bool:
    return path in OPEN_PATHS or path.startswith(OPEN_PREFIXES)


@app.middleware("http")
async def verify_api_key(request: Request, call_next):
    """X-API-Key gate; disabled while no API_KEY is configured."""
    expected_key = get_settings().api_key
    if not expected_key or _is_open(request.url.path):
        return await call_next(request)

    if request.headers.get("X-API-Key") != expected_key:
        host = request.client.host if request.client else "unknown"
        logger.warning(f"Invalid API key for {request.url.path} from {host}")
        return JSONResponse(status_code=401, content={"detail": "Invalid or missing API key"})

    return await call_next(request)


@app.exception_handler(KondateError)
async def domain_error_handler(request: Request, exc: KondateError):
    """Domain errors carry their own status code."""
    content = {"detail": exc.message, "error": exc.__class__.__name__}
    if isinstance(exc, BatchWriteError):
        content.update(exc.to_dict())
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=content)


app.include_router(health.router, tags=["health"])
app.include_router(cron.router, prefix="/api/cron", tags=["cron"])
app.include_router(expiration_api.router)
app.include_router(fridge_api.router)
app.include_router(recipes_api.router)
app.include_router(planning_api.router)
app.include_router(shopping_api.router)


@app.get("/")
async def root():
    return {
        "name": "kondate",
        "version": VERSION,
        "description": "Meal planning, shopping list & fridge inventory API",
        "docs": "/docs",
        "endpoints": SECTIONS,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "kondate.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=not settings.is_production,
    )
