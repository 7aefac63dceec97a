"""
TripTailor API - Main FastAPI application
"""
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables
load_dotenv()

from triptailor.utils.exceptions import NotFoundError, StoreError, ValidationError  # noqa: E402
from triptailor.utils.logger import get_logger  # noqa: E402

logger = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="TripTailor API",
    description="AI place suggestions for group trips",
    version="1.0.0"
)

# CORS middleware - allow the SPA to call our API
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",  # Vite dev server
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.validation_errors or exc.message})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error("store_unavailable", path=request.url.path, error=exc.message, context=exc.context)
    return JSONResponse(status_code=503, content={"detail": "Place store unavailable"})


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "service": "TripTailor API",
        "status": "running",
        "version": "1.0.0"
    }


@app.get("/health")
async def health_check():
    """Detailed health check"""
    from triptailor.utils.config import settings

    return {
        "status": "healthy",
        "api": "ok",
        "suggestions_enabled": settings.ai_suggestions_enabled,
        "cache_backend": settings.cache_backend,
        "store_backend": settings.store_backend,
    }


# Import and include routers
from triptailor.routes.suggestions import router as suggestions_router  # noqa: E402
from triptailor.routes.places import router as places_router  # noqa: E402

app.include_router(suggestions_router)
app.include_router(places_router)
