"""Member authentication – FastAPI application."""
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from memberauth.config import get_settings
from memberauth.database import Base, engine
# Import models so Base.metadata has all tables before create_all (schema source of truth)
from memberauth.models import Member, PendingVerification, RevokedToken  # noqa: F401
from memberauth.dependencies import attach_identity
from memberauth.exceptions import AuthError
from memberauth.routers import auth, members
from memberauth.services.revocation_sweep import start_revocation_sweep

settings = get_settings()
logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, debug=settings.debug, dependencies=[Depends(attach_identity)])

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)

app.include_router(auth.router)
app.include_router(members.router)


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"detail": "An unexpected error occurred", "code": "internal_error"}
    if settings.error_show_details:
        content["error"] = f"{type(exc).__name__}: {exc}"
    return JSONResponse(status_code=500, content=content)


@app.on_event("startup")
def startup():
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.warning("Database startup failed (tables not created). Check DATABASE_URL. Error: %s", e)

    app.state.scheduler = None
    if settings.revocation_sweep_enabled:
        app.state.scheduler = start_revocation_sweep(settings.revocation_sweep_interval_minutes)


@app.on_event("shutdown")
def shutdown():
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.shutdown(wait=False)


@app.get("/health")
def health():
    return {"status": "healthy"}
