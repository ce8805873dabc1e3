"""FastAPI application entrypoint."""
from __future__ import annotations

from fastapi import FastAPI

from track_router.api.endpoints import router as reroute_router


app = FastAPI(title="Track Router")

app.include_router(reroute_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
