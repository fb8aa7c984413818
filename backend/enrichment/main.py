"""FastAPI application."""

from fastapi import FastAPI

from backend.enrichment.api.routes.health import router as health_router
from backend.enrichment.api.routes.itineraries import router as itineraries_router
from backend.enrichment.api.routes.locate import router as locate_router
from backend.enrichment.api.routes.media import router as media_router
from backend.enrichment.api.routes.metrics import router as metrics_router

app = FastAPI(title="Itinerary Enrichment API", version="0.1.0")

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(itineraries_router, tags=["itineraries"])
app.include_router(media_router, tags=["media"])
app.include_router(locate_router, tags=["locate"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Itinerary Enrichment API", "version": "0.1.0"}
