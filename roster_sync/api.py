"""FastAPI application exposing the roster sync control surface."""

from __future__ import annotations

import asyncio
import hmac
import logging
from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, status
from fastapi.responses import PlainTextResponse

from .config import Settings, load_settings
from .service import RosterSyncService, create_service

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[RosterSyncService] = None,
) -> FastAPI:
    settings = settings or load_settings()
    service = service or create_service(settings)
    base = settings.base_path

    async def verify_api_key(x_api_key: Optional[str] = Header(None, alias="X-API-Key")) -> None:
        if not settings.api_key:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="No API key set"
            )
        if not x_api_key:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No API key")
        if not hmac.compare_digest(x_api_key.encode(), settings.api_key.encode()):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid API key")

    app = FastAPI(title="Roster Sync API", version="1.0.0")
    background: Dict[str, asyncio.Task[None]] = {}

    @app.on_event("startup")
    async def startup_event() -> None:  # pragma: no cover - io bound
        background["sync"] = asyncio.create_task(service.run_periodically())

    @app.on_event("shutdown")
    async def shutdown_event() -> None:  # pragma: no cover - io bound
        task = background.pop("sync", None)
        if task is not None:
            task.cancel()
        await service.close()

    def get_service() -> RosterSyncService:
        return service

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @app.get(f"{base}/ping", response_class=PlainTextResponse)
    async def ping() -> str:
        return "pong"

    @app.put(f"{base}/manual-confirm")
    async def manual_confirm(
        _: None = Depends(verify_api_key),
        svc: RosterSyncService = Depends(get_service),
    ) -> Dict[str, Any]:
        report = await svc.sync(force_write=True)
        if report.status == "failed":
            raise HTTPException(status_code=500, detail=report.error or "sync failed")
        return asdict(report)

    @app.get(f"{base}/sheet-summary", response_class=PlainTextResponse)
    async def sheet_summary(svc: RosterSyncService = Depends(get_service)) -> str:
        return await svc.summary()

    @app.get(f"{base}/status")
    async def sync_status(svc: RosterSyncService = Depends(get_service)) -> Dict[str, Any]:
        return await svc.status()

    return app


__all__ = ["create_app"]
