"""Google Sheets access for the absence spreadsheet."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import gspread
from google.oauth2.service_account import Credentials

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]


def load_credentials(
    service_account_json: Optional[str] = None,
    service_account_file: Optional[Path] = None,
) -> Credentials:
    """Build service-account credentials from inline JSON or a key file."""

    if service_account_json:
        try:
            info = json.loads(service_account_json)
        except json.JSONDecodeError as exc:
            raise RuntimeError("Invalid service account JSON payload.") from exc
        return Credentials.from_service_account_info(info, scopes=SCOPES)
    if service_account_file:
        return Credentials.from_service_account_file(str(service_account_file), scopes=SCOPES)
    raise RuntimeError("No Google service account credentials configured")


class SheetClient:
    """Reads every value from one worksheet of a spreadsheet."""

    def __init__(self, credentials: Credentials, worksheet_name: str = "Teachers") -> None:
        self._credentials = credentials
        self._worksheet_name = worksheet_name
        self._client: Optional[gspread.Client] = None

    def _gspread(self) -> gspread.Client:
        if self._client is None:
            self._client = gspread.authorize(self._credentials)
        return self._client

    def _fetch_rows(self, spreadsheet_id: str) -> List[List[str]]:
        spreadsheet = self._gspread().open_by_key(spreadsheet_id)
        worksheet = spreadsheet.worksheet(self._worksheet_name)
        rows = worksheet.get_all_values()
        logger.debug("Worksheet %s returned %d rows", self._worksheet_name, len(rows))
        return [[str(value) for value in row] for row in rows]

    async def fetch_rows(self, spreadsheet_id: str) -> List[List[str]]:
        return await asyncio.to_thread(self._fetch_rows, spreadsheet_id)

    async def close(self) -> None:
        self._client = None


__all__ = ["SheetClient", "load_credentials"]
