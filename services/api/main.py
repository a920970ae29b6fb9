"""API service for workflow editing and runs."""

from fastapi import FastAPI
from services.api.routes.workflow import router as workflow_router
from services.api.routes.sessions import router as sessions_router
from services.api.middleware import CorrelationIdMiddleware
from shared.logging_config import setup_logging

setup_logging("api")

app = FastAPI(title="Browser Workflow API", version="1.0.0")
app.add_middleware(CorrelationIdMiddleware)

app.include_router(workflow_router, tags=["Workflows"])
app.include_router(sessions_router, tags=["Sessions"])


@app.get("/")
async def root():
    return {"service": "api", "status": "running"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
