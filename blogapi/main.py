import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from blogapi.cache import cache
from blogapi.config import settings
from blogapi.database import close_engine
from blogapi.exceptions import register_exception_handlers
from blogapi.middleware import AccessLogMiddleware
from blogapi.routers import articles, comments, pending_updates, users


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await cache.connect()
    yield
    await cache.disconnect()
    await close_engine()


app = FastAPI(
    title="Blog API",
    description="Users, articles, comments and follower lists",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(AccessLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(users.router)
app.include_router(articles.router)
app.include_router(comments.router)
app.include_router(pending_updates.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0", "cache": cache.stats}
