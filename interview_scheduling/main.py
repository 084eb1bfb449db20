from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from interview_scheduling import __version__
from interview_scheduling.base.config import settings
from interview_scheduling.base.dependencies import get_meeting_pool, verify_api_key
from interview_scheduling.base.error_handlers import register_exception_handlers
from interview_scheduling.base.logging_config import app_logger as logger
from interview_scheduling.models.database import init_db
from interview_scheduling.routers import interviews, students, tutors
from interview_scheduling.services.meeting_pool import MeetingResourcePool


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.IS_PROD and not settings.ENABLE_API_KEY_SECURITY:
        logger.warning("⚠️ API key security is disabled in production")
    if settings.AUTO_CREATE_TABLES:
        init_db()
        logger.info("🗄 Database tables ensured")
    yield


# --- FastAPI app instance ---
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=__version__,
    docs_url="/docs" if settings.DEBUG_MODE else None,
    redoc_url="/redoc" if settings.DEBUG_MODE else None,
    openapi_url="/openapi.json" if settings.DEBUG_MODE else None,
    lifespan=lifespan,
)

# --- CORS config ---
origins = [
    "http://localhost:3000",     # Local dev front end
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Prometheus metrics ---
Instrumentator().instrument(app).expose(app)


# --- Logging middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"📥 {request.method} request to {request.url}")
    response = await call_next(request)
    logger.info(f"📤 Response: {response.status_code} for {request.url}")
    return response


# --- Exception handlers ---
register_exception_handlers(app)

# --- API Routers ---
secured = [Depends(verify_api_key)]
app.include_router(interviews.router, prefix="/interviews", tags=["Interviews"], dependencies=secured)
app.include_router(tutors.router, prefix="/tutors", tags=["Tutors"], dependencies=secured)
app.include_router(students.router, prefix="/students", tags=["Students"], dependencies=secured)


# --- System endpoints ---
@app.get("/health", tags=["System"])
def health_check():
    return {"status": "ok"}


@app.get("/version", tags=["System"])
def version_check(meetings: MeetingResourcePool = Depends(get_meeting_pool)):
    return {
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "meeting_provider_configured": meetings.is_configured(),
        "meeting_hosts": len(meetings.hosts),
    }
