import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import config
from . import models  # noqa: F401
from .database import Base, engine
from .domain.activity import router as activity_router
from .domain.bookings import router as bookings_router
from .domain.ledger import router as ledger_router
from .domain.scheduling import router as schedules_router
from .routes.laundry import router as laundry_router
from .routes.leaderboard import router as leaderboard_router
from .routes.rooms import router as rooms_router
from .routes.tasks import router as tasks_router
from .routes.users import router as users_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        # Another worker may have created them first
        if "already exists" in str(e):
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
            raise

    if not config.FIREBASE_PROJECT_ID:
        logger.warning("FIREBASE_PROJECT_ID is not set - every authenticated request will fail")
    if not config.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY is not set - the schedule optimizer runs in offline mode")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="DormDuty API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Every error answers {"error": message}; dict details are passed through as the body"""
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Missing or malformed input answers 400 with the first validation message.
    A problem with the Authorization header answers 401 instead.
    """
    errors = exc.errors()
    for error in errors:
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(f"Authentication failed for {request.url.path}: invalid Authorization header")
            return JSONResponse(status_code=401, content={"error": "Unauthorized - Missing token"})

    logger.warning(f"Validation error for {request.url.path}: {errors}")
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"error": f"{field}: {message}" if field else message},
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"{request.method} {request.url.path} - Database error: {exc}")
    return JSONResponse(status_code=500, content={"error": "Database error", "details": str(exc)})


# CORS Configuration
logger.info(f"CORS allowed origins: {config.ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_origin_regex=config.ALLOWED_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(users_router)
app.include_router(tasks_router)
app.include_router(laundry_router)
app.include_router(leaderboard_router)
app.include_router(rooms_router)
app.include_router(bookings_router)
app.include_router(schedules_router)
app.include_router(ledger_router)
app.include_router(activity_router)


@app.get("/")
def root():
    return {"message": "DormDuty API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
