"""
FastAPI Main Application
VideoTube Backend: users and video comments
"""
import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from core.config import settings
from core.database import init_db
from core.logging import setup_logging
from core.responses import api_error, api_response
from api import users, comments

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Backend API for a video-sharing platform: accounts and comments",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Startup event
@app.on_event("startup")
async def startup_event():
    """Configure logging and initialize database on startup"""
    setup_logging()
    logger.info("🚀 Starting VideoTube API...")
    init_db()
    logger.info(f"✅ API running on {settings.API_URL}")


# Health check endpoint
@app.get("/")
async def root():
    return api_response(
        {
            "version": "1.0.0",
            "status": "healthy",
            "docs": f"{settings.API_URL}/docs",
        },
        f"Welcome to {settings.APP_NAME}"
    )


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring"""
    return api_response({"status": "ok", "service": "backend-api"}, "OK")


# Include routers
app.include_router(users.router, prefix="/api/v1/users", tags=["Users"])
app.include_router(comments.router, prefix="/api/v1/comments", tags=["Comments"])


# Exception handlers: every failure is rendered in the response envelope
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return api_error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    return api_error(status.HTTP_400_BAD_REQUEST, "Invalid request data", errors)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}")
    return api_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
