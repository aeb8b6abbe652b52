from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from app.routers import matching

# Import logging and middleware
from app.utils.logging_config import configure_for_environment, get_logger
from app.middleware.error_handlers import (
    ExceptionHandlerMiddleware,
    RequestLoggingMiddleware,
    PerformanceMiddleware,
)
from app.models.ai_settings import load_settings
from app.services.matching import MatchingService

# Configure logging first
configure_for_environment()
logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    logger.info("Resume Matcher API starting up...")

    # Missing LLM configuration is fatal: ConfigurationError aborts startup
    settings = load_settings()
    service = MatchingService.from_settings(settings)
    app.state.matching_service = service

    client = service.scoring_client
    logger.info(f"Provider: {client.provider.value}")
    logger.info(f"Model: {settings.llm.model_name}")
    logger.info(f"Endpoint: {client.adapter.url}")
    logger.info("Resume Matcher API startup completed")

    yield

    logger.info("Resume Matcher API shutting down...")
    await service.aclose()
    logger.info("Resume Matcher API shutdown completed")


app = FastAPI(title="Resume Matcher API", version=VERSION, lifespan=lifespan)

# Middleware is LIFO: the last one added runs first
# Request logging runs inside the exception handler so it sees request.state.request_id
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(ExceptionHandlerMiddleware)
app.add_middleware(PerformanceMiddleware, slow_request_threshold=30.0)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
@app.head("/")
async def root():
    """Root endpoint - handles both GET and HEAD requests for health checks"""
    logger.debug("Root endpoint accessed")
    return {"message": "Welcome to the Resume Matcher API", "version": VERSION, "status": "ok"}


@app.get("/health")
@app.head("/health")
async def health_check():
    """Health check endpoint - handles both GET and HEAD requests"""
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat() + "Z"}


app.include_router(matching.router)

logger.info("Resume Matcher API initialized successfully")
