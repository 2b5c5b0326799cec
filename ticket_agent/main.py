"""FastAPI application exposing the task table."""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from ticket_agent.api.tasks import router as tasks_router
from ticket_agent.core.auth import verify_api_key
from ticket_agent.core.database import create_tables


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_tables()
    yield


app = FastAPI(
    title="Ticket Agent API",
    description="Read-only view of Jira tasks processed by the coding agent",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(tasks_router, prefix="/v1", tags=["tasks"])


@app.get("/health")
def health_check(api_key: str = Depends(verify_api_key)):
    """Health check endpoint."""
    return {"status": "healthy"}
