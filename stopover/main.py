import logging
import time

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stopover.core.logging import setup_logging
from stopover.core.settings import get_settings

# Load environment variables from .env file
load_dotenv()

settings = get_settings()
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

from stopover.api.v1 import stops, trips  # noqa: E402
from stopover.core.exceptions import ConfigurationError  # noqa: E402

app = FastAPI(title="Stopover API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests_middleware(request: Request, call_next):
    """Log incoming requests and their processing time."""
    start_time = time.time()
    method = request.method
    path = request.url.path
    logger.info(f"Request: {method} {path}")

    try:
        response = await call_next(request)
    except Exception as e:
        process_time = time.time() - start_time
        logger.error(
            f"Error: {method} {path} - Exception: {str(e)} - Duration: {process_time:.4f}s",
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal Server Error. Please check logs for more details."},
        )
    process_time = time.time() - start_time
    logger.info(
        f"Response: {method} {path} - Status: {response.status_code} - Duration: {process_time:.4f}s"
    )
    return response


app.include_router(trips.router, prefix="/api/v1/trips", tags=["trips"])
app.include_router(stops.router, prefix="/api/v1/stops", tags=["stops"])


@app.get("/api/v1", summary="API Welcome", tags=["General"])
async def api_welcome_message():
    return {
        "message": "Welcome to Stopover API v1",
        "version": app.version,
        "documentation_url": app.docs_url,
        "openapi_url": app.openapi_url,
    }


@app.exception_handler(HTTPException)
async def custom_http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )


# Raised while building provider dependencies, before any route handler runs
@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={"detail": "Maps provider is not configured."},
    )


if __name__ == "__main__":
    logger.info(f"Starting server on {settings.HOST}:{settings.PORT}, environment: {settings.ENVIRONMENT}")
    uvicorn.run(
        "stopover.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.ENVIRONMENT == "development",
    )
