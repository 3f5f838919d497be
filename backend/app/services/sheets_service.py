"""
BranchRelay Backend — Google Sheets Append Service
====================================================

What:  Appends one branch row to the configured Google Sheet.
Why:   The sheet is the system of record for branch submissions; keeping the
       Google client, credentials and error translation in one class keeps
       BranchService free of googleapiclient details.
How:   Builds service-account credentials from the e-mail and private key in
       Settings, then calls spreadsheets.values.append on columns A:H with
       USER_ENTERED input (Sheets coerces "12.5" into a number).
Who:   Called by BranchService after the image uploads succeed.

Private key handling:
    The PEM key is normally pasted into a one-line env var, which leaves
    artifacts behind: wrapping quotes, a trailing comma copied from the JSON
    key file, and literal "\\n" sequences instead of newlines.
    normalize_private_key() undoes exactly those.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Sequence

import httplib2
from google.oauth2 import service_account
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build

from app.config import Settings, settings
from app.exceptions import ConfigurationError, SheetError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"

# branchId, branchName, latitude, longitude, 3 image URLs, timestamp
ROW_WIDTH = 8
SHEET_COLUMNS = "A:H"


def normalize_private_key(raw: str) -> str:
    """
    Turn a one-line env var value into a PEM private key.

    Steps: trim; drop a leading quote; drop a trailing `",` or else a trailing
    quote; expand literal \\n into newlines; trim again.
    """
    key = raw.strip()
    if key.startswith('"'):
        key = key[1:]
    if key.endswith('",'):
        key = key[:-2]
    elif key.endswith('"'):
        key = key[:-1]
    key = key.replace("\\n", "\n")
    return key.strip()


class SheetsService:
    """
    Appends rows to one sheet of one spreadsheet.

    The credentials and the discovery client are built on first use and
    reused. Each append executes over its own AuthorizedHttp, because an
    httplib2.Http connection must not be shared between worker threads.
    The configuration check runs on every append so a missing credential
    is reported before any network call.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings
        self._client = None
        self._credentials = None

    def validate_configuration(self) -> None:
        """
        Raises:
            ConfigurationError: service account, private key or spreadsheet id
                is missing.
        """
        missing = self.config.missing_sheets_settings()
        if missing:
            raise ConfigurationError(missing, service="Google Sheets")

    def _get_client(self):
        self.validate_configuration()
        if self._client is None:
            try:
                credentials = service_account.Credentials.from_service_account_info(
                    {
                        "type": "service_account",
                        "client_email": self.config.google_sheets_service_account,
                        "private_key": normalize_private_key(
                            self.config.google_sheets_private_key
                        ),
                        "token_uri": TOKEN_URI,
                    },
                    scopes=SCOPES,
                )
                self._credentials = credentials
                self._client = build(
                    "sheets", "v4", credentials=credentials, cache_discovery=False
                )
            except Exception as e:
                logger.error("Error creating Google Sheets client: %s", e)
                raise SheetError(
                    reason=f"Failed to create Google Auth: {e}",
                    context={"error_type": type(e).__name__},
                ) from e
            logger.info(
                "Google Sheets client created for %s",
                self.config.google_sheets_service_account,
            )
        return self._client

    def _new_http(self) -> AuthorizedHttp:
        return AuthorizedHttp(self._credentials, http=httplib2.Http())

    @property
    def target_range(self) -> str:
        return f"{self.config.sheet_name}!{SHEET_COLUMNS}"

    async def append_row(self, row: Sequence[str]) -> Dict[str, Any]:
        """
        Append one row to the configured sheet.

        Args:
            row: Exactly 8 cell values, in sheet column order.

        Returns:
            The Sheets API append response (spreadsheetId, tableRange,
            updates.updatedCells, ...).

        Raises:
            ValueError: row does not have exactly 8 cells.
            ConfigurationError: Sheets credentials or spreadsheet id missing.
            SheetError: credentials rejected or the append call failed.
        """
        if len(row) != ROW_WIDTH:
            raise ValueError(f"Sheet row must have exactly {ROW_WIDTH} cells, got {len(row)}")

        client = self._get_client()
        http = self._new_http()

        def _append() -> Dict[str, Any]:
            return client.spreadsheets().values().append(
                spreadsheetId=self.config.spreadsheet_id,
                range=self.target_range,
                valueInputOption="USER_ENTERED",
                body={"values": [list(row)]},
            ).execute(http=http)

        try:
            # Why a thread: googleapiclient uses blocking httplib2 I/O
            response = await asyncio.to_thread(_append)
        except Exception as e:
            logger.error("Error appending to sheet %s: %s", self.target_range, e, exc_info=True)
            raise SheetError(
                reason=str(e),
                context={"range": self.target_range, "error_type": type(e).__name__},
            ) from e

        updated = response.get("updates", {}).get("updatedCells", 0)
        logger.info("%s cells appended to %s.", updated, self.target_range)
        return response


# ── Singleton Instance ────────────────────────────────────────────────────
sheets_service = SheetsService(settings)
