"""FastAPI + lifespan (DashboardHub 초기화)"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.responses import HTMLResponse, RedirectResponse

from voltboard.api.routes import router
from voltboard.config import AppConfig, load_config
from voltboard.dashboard import build_dashboard_html
from voltboard.hub import DashboardHub

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def create_app(config: AppConfig | None = None, *, transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = config or load_config()
        hub = DashboardHub(cfg, transport=transport)
        hub.start()
        app.state.hub = hub
        logging.getLogger(__name__).info("Volt dashboard started (API: %s)", cfg.api_url)
        yield
        await hub.stop()

    app = FastAPI(title="Volt Dashboard", lifespan=lifespan)

    @app.get("/", include_in_schema=False)
    async def index():
        return RedirectResponse("/dashboard")

    # Dashboard
    @app.get("/dashboard", response_class=HTMLResponse)
    async def dashboard():
        return build_dashboard_html()

    # Health
    @app.get("/health")
    async def health():
        return {"status": "ok", "upstream": await app.state.hub.client.ping()}

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    cfg = load_config()
    uvicorn.run("voltboard.main:app", host=cfg.host, port=cfg.port)
