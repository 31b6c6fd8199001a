from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.database import init_db
import logging

# Configure basic logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    description="Airfare watch: cached, provider-rotating fare search",
    version="1.0.0",
    lifespan=lifespan,
)

origins = ["*"]

if settings.env == "production" and settings.cors_origins:
    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]

logger.info(f"CORS origins: {origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from app.routers import flight_search, system
app.include_router(flight_search.router)
app.include_router(system.router)

@app.get("/health")
def health_check():
    """
    Basic health check endpoint to verify service is running.
    """
    return {"status": "ok", "environment": settings.env}
