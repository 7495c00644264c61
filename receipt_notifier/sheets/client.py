from __future__ import annotations

import logging
from typing import Sequence

import gspread
import requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1

from ..config import Settings
from ..errors import SourceUnavailable, WriteConflict

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
CONFLICT_STATUSES = {409, 412}

Table = list[list[str]]


def authorize(settings: Settings) -> gspread.Client:
    """Build an authorized gspread client.

    A service account takes precedence when configured; otherwise the installed
    app flow runs once and caches the user token next to the credentials.
    """
    try:
        if settings.service_account_file:
            credentials = Credentials.from_service_account_file(
                str(settings.service_account_file), scopes=SCOPES
            )
            client = gspread.authorize(credentials)
        else:
            client = gspread.oauth(
                scopes=SCOPES,
                credentials_filename=str(settings.credentials_path),
                authorized_user_filename=str(settings.token_cache_path),
            )
    except (OSError, ValueError, GoogleAuthError) as exc:
        raise SourceUnavailable(f"Could not authorize Google Sheets access: {exc}") from exc
    client.http_client.set_timeout(settings.request_timeout)
    return client


def quote_tab(tab_name: str) -> str:
    return "'" + tab_name.replace("'", "''") + "'"


class SheetsClient:
    def __init__(self, client: gspread.Client, spreadsheet_id: str, tab_name: str) -> None:
        self._client = client
        self._spreadsheet_id = spreadsheet_id
        self.tab_name = tab_name
        self._spreadsheet: gspread.Spreadsheet | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SheetsClient":
        return cls(authorize(settings), settings.sheet_id, settings.tab_name)

    def scan_range(self) -> str:
        """The whole used range of the tab, however many columns it has."""
        return quote_tab(self.tab_name)

    def cell_address(self, row: int, col: int) -> str:
        """A1 address of a 1-based (row, col) cell on the configured tab."""
        return f"{quote_tab(self.tab_name)}!{rowcol_to_a1(row, col)}"

    def fetch_table(self, range_spec: str | None = None) -> Table:
        range_spec = range_spec or self.scan_range()
        try:
            response = self._get_spreadsheet().values_get(range_spec)
        except gspread.exceptions.APIError as exc:
            raise SourceUnavailable(f"Could not read {range_spec}: {exc}") from exc
        except (requests.RequestException, GoogleAuthError) as exc:
            raise SourceUnavailable(f"Could not reach Google Sheets: {exc}") from exc

        rows = response.get("values", [])
        logger.debug("Fetched %d row(s) from %s", len(rows), range_spec)
        return [[str(cell) for cell in row] for row in rows]

    def write_cells(
        self,
        address: str,
        values: Sequence[Sequence[str]],
        *,
        raw: bool = True,
    ) -> None:
        params = {"valueInputOption": "RAW" if raw else "USER_ENTERED"}
        body = {"values": [list(row) for row in values]}
        try:
            self._get_spreadsheet().values_update(address, params=params, body=body)
        except gspread.exceptions.APIError as exc:
            if exc.response.status_code in CONFLICT_STATUSES:
                raise WriteConflict(f"Write to {address} was rejected: {exc}") from exc
            raise SourceUnavailable(f"Could not write {address}: {exc}") from exc
        except (requests.RequestException, GoogleAuthError) as exc:
            raise SourceUnavailable(f"Could not reach Google Sheets: {exc}") from exc

    def _get_spreadsheet(self) -> gspread.Spreadsheet:
        if self._spreadsheet is None:
            try:
                self._spreadsheet = self._client.open_by_key(self._spreadsheet_id)
            except gspread.SpreadsheetNotFound as exc:
                raise SourceUnavailable(
                    f"Spreadsheet '{self._spreadsheet_id}' not found or not shared with these credentials."
                ) from exc
            except gspread.exceptions.APIError as exc:
                raise SourceUnavailable(f"Could not open spreadsheet: {exc}") from exc
            except (requests.RequestException, GoogleAuthError) as exc:
                raise SourceUnavailable(f"Could not reach Google Sheets: {exc}") from exc
        return self._spreadsheet
