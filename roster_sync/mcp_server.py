"""MCP server exposing roster sync tools."""

from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .config import load_settings
from .service import RosterSyncService, create_service


def create_mcp(service: RosterSyncService) -> FastMCP:
    mcp = FastMCP("roster-sync")

    @mcp.tool()
    async def force_sync() -> dict:
        """Run a sync pass now and write to the registry regardless of recent sheet edits."""

        report = await service.sync(force_write=True)
        return asdict(report)

    @mcp.tool()
    async def get_absence_summary() -> str:
        """Return one line per absent member with the periods they are out."""

        return await service.summary() or "Nobody is absent."

    @mcp.tool()
    async def get_sync_status() -> dict:
        """Return roster size, sync timestamps and the last pass report."""

        return await service.status()

    return mcp


def main(env_file: Optional[str] = None) -> None:  # pragma: no cover - io bound
    settings = load_settings(env_file)
    create_mcp(create_service(settings)).run()


if __name__ == "__main__":  # pragma: no cover
    main()


__all__ = ["create_mcp", "main"]
