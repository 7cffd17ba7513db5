"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a shared backend because:
1. The owner can look at their stock and sales from any browser
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Every save rewrites the whole worksheet (fine for hundreds to low
  thousands of records)
- No transactions (the ledger's in-memory state stays authoritative)

Each collection lives in its own worksheet with two columns:
id and record_json. Settings are stored as a single row.
"""

import json
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from biztrack.config import get_settings
from biztrack.config.settings import GoogleSheetsSettings
from biztrack.models.audit import AuditEvent, AuditEventType, AuditSeverity
from biztrack.services.storage.interface import (
    AuditStorageInterface,
    Collection,
    StateStorageInterface,
    StorageConnectionError,
    StorageError,
    StorageNotFoundError,
)


STATE_COLUMNS = ["id", "record_json"]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]

SETTINGS_ROW_ID = "settings"


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageNotFoundError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(
        self,
        title: str,
        header: list[str],
        rows: int = 1000,
    ) -> tuple[gspread.Worksheet, bool]:
        """
        Get or create a worksheet.

        Returns:
            (worksheet, created) - created is True if it did not exist yet
        """
        spreadsheet = self.get_spreadsheet()
        try:
            return spreadsheet.worksheet(title), False
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(header),
            )
            sheet.append_row(header)
            return sheet, True

    def get_collection_sheet(self, collection: Collection) -> tuple[gspread.Worksheet, bool]:
        return self.get_worksheet(
            f"{self._settings.worksheet_prefix}{collection.value}",
            STATE_COLUMNS,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        sheet, _ = self.get_worksheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )
        return sheet


class GoogleSheetsStateStorage(StateStorageInterface):
    """
    Google Sheets implementation of ledger state storage.

    One record per row; the record itself is JSON-serialized so the
    sheet layout does not have to change when models gain fields.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def load_collection(self, collection: Collection) -> Optional[Any]:
        try:
            sheet, created = self._client.get_collection_sheet(collection)
            if created:
                return None
            rows = sheet.get_all_values()[1:]  # Skip header
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load {collection.value}: {e}")

        records = []
        for row in rows:
            if len(row) < 2 or not row[1]:
                continue  # Skip empty rows
            try:
                records.append(json.loads(row[1]))
            except json.JSONDecodeError as e:
                raise StorageError(
                    f"Corrupt record {row[0]!r} in {collection.value}: {e}"
                )

        if collection == Collection.SETTINGS:
            return records[0] if records else None
        return records

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def save_collection(self, collection: Collection, records: Any) -> None:
        if collection == Collection.SETTINGS:
            rows = [[SETTINGS_ROW_ID, json.dumps(records, ensure_ascii=False)]]
        else:
            rows = [
                [str(record.get("id", "")), json.dumps(record, ensure_ascii=False)]
                for record in records
            ]

        try:
            sheet, _ = self._client.get_collection_sheet(collection)
            sheet.clear()
            sheet.append_rows([STATE_COLUMNS] + rows, value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to save {collection.value}: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
        )

    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except (ValueError, json.JSONDecodeError):
                    continue  # Skip malformed rows

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
