from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .config import settings
from .middleware import RateLimitMiddleware, SecurityHeadersMiddleware
from .routes import insights
import logging

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Kindra Insights API")

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(insights.router)

if not settings.DATABASE_URL:
    logger.warning("⚠️ DATABASE_URL not set, stored-record endpoints will return 503")


@app.get("/")
async def root():
    return {"message": "Kindra Insights API is running"}


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "database": "configured" if settings.DATABASE_URL else "not configured",
    }
