"""FastAPI application setup for weatherpulse."""

from fastapi import FastAPI

from .api import router as api_router

app = FastAPI(title="Weatherpulse")


@app.get("/health")
def health():
    """Liveness probe; does not touch the weather provider."""
    return {"status": "ok"}


# API routes
app.include_router(api_router, prefix="/v1")
