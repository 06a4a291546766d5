"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api.router import router
from .config import settings
from .database import async_session_factory, init_db
from .services.comment_store import LocalCommentStore
from .services.github_client import GitHubClient
from .services.sessions import SessionManager
from .services.timers import drain_background_tasks
from .utils.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    setup_logging()
    await init_db()
    gh = GitHubClient()
    await gh.open()
    app.state.sessions = SessionManager(gh, LocalCommentStore(async_session_factory))
    yield
    # Shutdown
    await app.state.sessions.close_all()
    await drain_background_tasks()
    await gh.aclose()


app = FastAPI(
    title="docsync",
    description="Anchored document comments kept in sync with GitHub pull request reviews",
    version="0.1.0",
    lifespan=lifespan,
)

# Include routes
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "docsync.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )
