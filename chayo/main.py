"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from chayo.api import router as api_router
from chayo.core.tasks import drain_background_tasks


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await drain_background_tasks()


app = FastAPI(
    title="Chayo",
    description="AI onboarding and business chat engine",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


# Include v1 API router
app.include_router(api_router, prefix="/v1", tags=["v1"])
