"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import Base, engine
from app.logging_config import setup_logging
from app.services.errors import ActivityBoardError

# Import routers
from app.routers import activities, rsvps, sign_up, users, questions

# Import all models so Base.metadata knows about them
from app.models.user import User                # noqa: F401
from app.models.activity import Activity        # noqa: F401
from app.models.rsvp import ActivityRsvp        # noqa: F401

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Activity Board",
    description="Community activities with admin review, RSVPs and a sign-up cart",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ActivityBoardError)
async def activity_board_error_handler(request: Request, exc: ActivityBoardError):
    """Every service failure becomes a typed JSON outcome."""
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "error": exc.kind})


# Register routers
app.include_router(activities.router, prefix="/api/activities", tags=["Activities"])
app.include_router(rsvps.router, prefix="/api/activities", tags=["RSVPs"])
app.include_router(sign_up.router, prefix="/api/sign-up", tags=["SignUp"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(questions.router, prefix="/api/questions", tags=["Questions"])


@app.on_event("startup")
async def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)


@app.on_event("shutdown")
async def on_shutdown():
    await engine.dispose()


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
