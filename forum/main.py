import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from forum.cache import cache
from forum.config import settings
from forum.database import dispose_engine, gateway
from forum.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    ForumError,
    NotFoundError,
    UnauthorizedError,
)
from forum.middleware import TimingMiddleware
from forum.routers import auth, categories, comments, likes, metrics, posts, users
from forum.services import auth_service

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = {
    NotFoundError: 404,
    ForbiddenError: 403,
    BadRequestError: 400,
    ConflictError: 409,
    UnauthorizedError: 401,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup; the API keeps working without Redis.
    await cache.connect()
    await auth_service.purge_expired_tokens(gateway)
    yield
    # Shutdown
    await cache.disconnect()
    await dispose_engine()


app = FastAPI(
    title="Forum API",
    description="Posts, comments, categories and reactions with role-based access control",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error translation
@app.exception_handler(ForumError)
async def forum_error_handler(request: Request, exc: ForumError):
    status_code = _STATUS_BY_ERROR.get(type(exc), 400)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse({"detail": exc.message}, status_code=status_code, headers=headers)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.info("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse({"detail": "Conflict with existing data"}, status_code=409)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if settings.DEBUG else "Internal Server Error"
    return JSONResponse({"detail": message}, status_code=500)


# Routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(posts.router)
app.include_router(comments.router)
app.include_router(likes.router)
app.include_router(categories.router)
app.include_router(metrics.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
