import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from articlehub.cache import cache
from articlehub.config import settings
from articlehub.exceptions import ServiceError
from articlehub.middleware import RequestDiagnosticsMiddleware
from articlehub.routers import articles, notices, stickers, users

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging()
    try:
        await cache.connect()
    except Exception as exc:
        logger.warning("Article cache unavailable, serving from the database only: %s", exc)
    yield
    # Shutdown
    await cache.disconnect()

app = FastAPI(
    title="Article Hub API",
    description="Users, articles, notices and stickers over a relational store",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Middleware
app.add_middleware(RequestDiagnosticsMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(users.router)
app.include_router(articles.router)
app.include_router(notices.router)
app.include_router(stickers.router)

@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
