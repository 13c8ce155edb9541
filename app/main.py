import logging
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.routes import document
from app.db.base import Base
from app.db.sessions import engine
from app.core.config import settings
from app.core.errors import DocumentServiceError, UnexpectedError

# Import all models to ensure they're registered with Base
import app.models

logger = logging.getLogger(__name__)

# Create tables
if settings.STORAGE_BACKEND == "database":
    Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Resume builder document API"
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DocumentServiceError)
async def document_service_error_handler(request: Request, exc: DocumentServiceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = UnexpectedError("Internal server error", error=str(exc))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "message": "Invalid request",
            "error": jsonable_encoder(exc.errors()),
        },
    )


# Register routers
app.include_router(document.router)


@app.on_event("startup")
async def startup_event():
    logger.info("%s v%s starting...", settings.APP_NAME, settings.APP_VERSION)
    logger.info("Storage backend: %s", settings.STORAGE_BACKEND)
    logger.info("JWT authentication enabled")


@app.get("/health")
def health():
    return {"status": "ok"}
