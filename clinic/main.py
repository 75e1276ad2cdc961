# clinic/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from clinic.core.config import settings
from clinic.core.errors import BookingError
from clinic.core.middleware import RequestTimingMiddleware
from clinic.db.sql import init_db
from clinic.routers import appointments, auth, health, payments, schedule

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create missing tables on startup.
    """
    logger.info("Starting %s v%s (%s)", settings.APP_NAME, settings.VERSION, settings.APP_ENV)
    await init_db()
    yield
    logger.info("Shutting down %s", settings.APP_NAME)


async def booking_error_handler(request: Request, exc: BookingError):
    logger.info(
        "%s %s rejected: %s - %s", request.method, request.url.path, exc.kind.value, exc.message
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.kind.value, "message": exc.message},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "InternalError",
            "message": "Internal server error",
        },
    )


def create_app(*, run_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan if run_lifespan else None,
    )

    app.add_middleware(RequestTimingMiddleware)
    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Routing
    app.include_router(health.router, prefix=settings.API_PREFIX, tags=["health"])
    app.include_router(auth.router, prefix=settings.API_PREFIX, tags=["auth"])
    app.include_router(schedule.router, prefix=settings.API_PREFIX, tags=["schedule"])
    app.include_router(appointments.router, prefix=settings.API_PREFIX, tags=["appointments"])
    app.include_router(payments.router, prefix=settings.API_PREFIX, tags=["payments"])

    @app.get("/")
    def root():
        return {"message": f"{settings.APP_NAME} running"}

    return app


app = create_app()
