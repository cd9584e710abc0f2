import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Import all models to ensure they're registered with SQLAlchemy Base
from . import models  # noqa: F401
from .config import ALLOWED_ORIGINS
from .database import Base, engine
from .domain.directory import router as directory_router
from .domain.recurring import router as recurring_router
from .domain.waitlist import router as waitlist_router
from .errors import SchedulingConflictError, SchedulingError, ValidationError
from .shared.responses import failure

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        error_msg = str(e)
        if "already exists" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Practice Scheduling API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(ValidationError)
async def scheduling_validation_handler(request: Request, exc: ValidationError):
    logger.warning(f"Validation failed for {request.url.path}: {exc.message}")
    return JSONResponse(status_code=400, content=failure(exc.message, field=exc.field))


@app.exception_handler(SchedulingConflictError)
async def scheduling_conflict_handler(request: Request, exc: SchedulingConflictError):
    return JSONResponse(status_code=409, content=failure(exc.message, conflicts=exc.conflicts))


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    logger.error(f"{request.method} {request.url.path} - Scheduling error: {exc.message}")
    return JSONResponse(status_code=400, content=failure(exc.message))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    content = failure(str(exc.detail))
    content["detail"] = exc.detail
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.warning(f"Validation error for {request.url.path}: {errors}")
    first = errors[0] if errors else {}
    message = str(first.get("msg", "Invalid request")).removeprefix("Value error, ")
    content = failure(message)
    content["detail"] = jsonable_errors(errors)
    return JSONResponse(status_code=422, content=content)


def jsonable_errors(errors: list) -> list:
    """Drop exception objects pydantic keeps in ``ctx``"""
    return [{key: value for key, value in e.items() if key != "ctx"} for e in errors]


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(recurring_router, prefix=API_PREFIX)
app.include_router(waitlist_router, prefix=API_PREFIX)
app.include_router(directory_router, prefix=API_PREFIX)


@app.get("/health")
async def health():
    return {"status": "healthy"}
