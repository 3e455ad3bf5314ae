import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import ALLOWED_ORIGINS
from .domain.email.router import router as email_router
from .domain.notifications.router import events_router
from .domain.notifications.router import router as notifications_router
from .domain.payments.router import router as payments_router
from .domain.push.router import router as push_router
from .domain.sessions.router import router as sessions_router
from .errors import CallableError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

app = FastAPI(title="Franchise Portal API", version="1.0.0")


@app.exception_handler(CallableError)
async def callable_error_handler(request: Request, exc: CallableError):
    """Render caller errors in the callable wire shape"""
    if exc.status_code >= 500:
        logger.error(f"{request.url.path} failed: {exc.code} - {exc.message}")
    else:
        logger.warning(f"{request.url.path} rejected: {exc.code} - {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed callable envelopes are invalid-argument, not 422"""
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    error = CallableError("invalid-argument", "Request body must be a JSON object with a 'data' field.")
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Routes
app.include_router(events_router)
app.include_router(notifications_router)
app.include_router(email_router)
app.include_router(payments_router)
app.include_router(push_router)
app.include_router(sessions_router)


@app.get("/")
def root():
    return {"message": "Franchise Portal API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
