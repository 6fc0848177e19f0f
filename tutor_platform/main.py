from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from tutor_platform.config import Settings, get_settings
from tutor_platform.database.database import Database
from tutor_platform.database.redis import RedisClient
from tutor_platform.exceptions import AppError
from tutor_platform.logger import logger, audit_logger, setup_logger
from tutor_platform.rate_limit import limiter
from tutor_platform.services import otp_service, user_service, catalog_service
from tutor_platform.services.email_service import EmailService
from tutor_platform.services.media_service import MediaService
from tutor_platform.utilities import error_response

### ROUTERS
from tutor_platform.routers.admin import router as admin_router
from tutor_platform.routers.authentication import router as auth_router
from tutor_platform.routers.grade import router as grade_router
from tutor_platform.routers.parent import router as parent_router
from tutor_platform.routers.student import router as student_router
from tutor_platform.routers.subject import router as subject_router
from tutor_platform.routers.tutor import router as tutor_router
from tutor_platform.routers.upload import router as upload_router
from tutor_platform.routers.user import router as user_router


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging all HTTP requests and responses.

    Logs request method, URL, response status, and timing information.
    Handles errors by logging exceptions.
    """
    async def dispatch(self, request: Request, call_next):
        # Log request
        start_time = datetime.now()
        logger.info(f"Request: {request.method} {request.url}")

        try:
            response = await call_next(request)
            # Log response
            duration = (datetime.now() - start_time).total_seconds()
            logger.info(f"Response: {response.status_code} - Duration: {duration:.3f}s")
            return response
        except Exception as e:
            # Log error
            logger.error(f"Error processing request: {str(e)}")
            raise

def _field_errors(errors) -> list:
    """Turn pydantic error dicts into [{field, message}], dropping the body/query prefix."""
    result = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
        result.append({"field": ".".join(location) or None, "message": error.get("msg")})
    return result

def register_exception_handlers(app: FastAPI):
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=error_response(exc.message, exc.errors))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content=error_response(str(exc.detail)), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content=error_response("Validation failed", _field_errors(exc.errors())))

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        # Models built inside endpoints, e.g. from multipart form fields
        return JSONResponse(status_code=400, content=error_response("Validation failed", _field_errors(exc.errors())))

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(status_code=429, content=error_response(f"Too many requests: {exc.detail}"))

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
        return JSONResponse(status_code=409, content=error_response("Resource already exists"))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}")
        return JSONResponse(status_code=500, content=error_response("Internal Server Error"))

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Passing settings overrides the get_settings dependency for this app only,
    which is how tests run against a temporary database.
    """
    app_settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application startup and shutdown.
        Opens the database, optional Redis, email and media clients; disposes them on shutdown.
        """
        setup_logger("server", app_settings.logs_dir)
        audit_logger.configure(app_settings.logs_dir)
        logger.info("Server starting up...")

        database = Database(app_settings.db_url)
        database.create_all()
        app.state.database = database
        app.state.redis = RedisClient(app_settings.redis_host, app_settings.redis_port, app_settings.redis_password) if app_settings.use_redis else None
        app.state.email_service = EmailService(app_settings)
        app.state.media_service = MediaService(app_settings)

        db = database.SessionLocal()
        try:
            otp_service.cleanup_expired_otps(db)
            if app_settings.seed_catalog:
                catalog_service.seed_catalog(db)
            user_service.bootstrap_admin(db, app_settings)
        finally:
            db.close()

        yield

        logger.info("Server shutting down...")
        if app.state.redis:
            app.state.redis.close()
        database.dispose()

    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        openapi_url="/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    if settings is not None:
        app.dependency_overrides[get_settings] = lambda: settings

    limiter.enabled = app_settings.rate_limit_enabled
    app.state.limiter = limiter

    # Add logging middleware
    app.add_middleware(LoggingMiddleware)

    # Add CORS middleware with environment configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
        max_age=3600
    )

    register_exception_handlers(app)

    # Include routers
    prefix = app_settings.api_prefix
    app.include_router(auth_router, prefix=prefix, tags=['authentication'])
    app.include_router(user_router, prefix=prefix, tags=['users'])
    app.include_router(tutor_router, prefix=prefix, tags=['tutors'])
    app.include_router(student_router, prefix=prefix, tags=['students'])
    app.include_router(parent_router, prefix=prefix, tags=['parents'])
    app.include_router(subject_router, prefix=prefix, tags=['subjects'])
    app.include_router(grade_router, prefix=prefix, tags=['grades'])
    app.include_router(upload_router, prefix=prefix, tags=['upload'])
    app.include_router(admin_router, prefix=prefix, tags=['admin'])

    @app.get("/")
    def read_root():
        """
        Root endpoint returning API welcome message.

        Returns:
        - dict: Welcome message
        """
        return {"success": True, "message": f"Welcome to the {app_settings.app_name}"}

    @app.get("/health")
    def health():
        return {"success": True, "message": "OK"}

    return app

if __name__ == '__main__':
    import uvicorn
    uvicorn.run("tutor_platform.main:create_app", factory=True, host=get_settings().app_host, port=get_settings().app_port)
