"""
Google Sheets document client.

Low-level operations against one firm's spreadsheet through gspread: resolve
a tab to its sheet id, read a tab, upsert or delete a row keyed by one column,
create tabs and write formatted headers. Rows are matched by the string value
of their key cell; the scan-then-write upsert is not atomic, so concurrent
writers to the same tab must be serialized by the caller.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import gspread
from gspread.exceptions import APIError, SpreadsheetNotFound
from gspread.utils import absolute_range_name
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials

from studio_sync.services.google_auth import AccessToken
from studio_sync.utils.config import get_config
from studio_sync.utils.exceptions import (
    SheetsAPIError,
    SheetsAuthError,
    SheetsNotFoundError,
    classify_status,
)
from studio_sync.utils.logger import get_logger


logger = get_logger(__name__)


Row = List[Any]


@dataclass(frozen=True)
class HeaderStyle:
    """Text format applied to a header row."""
    
    font_size: int
    bold: bool = True
    background: Optional[Dict[str, float]] = None


# Headers rewritten during entity sync
SYNC_HEADER_STYLE = HeaderStyle(font_size=10, background={"red": 0.9, "green": 0.9, "blue": 0.9})


def spreadsheet_url(document_id: str) -> str:
    return f"https://docs.google.com/spreadsheets/d/{document_id}/edit"


def cell_key(value: Any) -> str:
    """Normalize a cell value for key comparison."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


class SheetsDocumentClient:
    """
    Row-level access to tenant spreadsheets.
    
    Example:
        client = SheetsDocumentClient(access_token=token)
        client.ensure_tab_exists(doc_id, "Clients", CLIENTS_HEADERS)
        client.upsert_row(doc_id, "Clients", [client_id, "Asha", ...])
    """
    
    def __init__(self, access_token: Optional[AccessToken] = None,
                 client: Optional[gspread.Client] = None,
                 font_family: Optional[str] = None,
                 data_font_size: Optional[int] = None):
        """
        Initialize the document client.
        
        Args:
            access_token: Token used to authorize gspread requests
            client: Pre-built gspread client (tests inject a fake)
            font_family: Font applied to written cells
            data_font_size: Font size of data rows
        """
        config = get_config()
        
        if client is None:
            if access_token is None:
                raise ValueError("Either access_token or client is required")
            client = gspread.Client(auth=Credentials(token=access_token.token))
        
        self._client = client
        self._spreadsheets: Dict[str, gspread.Spreadsheet] = {}
        self.font_family = font_family or config.sheets_font_family
        self.data_font_size = data_font_size or config.sheets_data_font_size
    
    # ------------------------------------------------------------------
    # Error translation
    # ------------------------------------------------------------------
    
    @contextmanager
    def _api_call(self, document_id: str, range_name: Optional[str] = None) -> Iterator[None]:
        """Translate gspread/google-auth failures into SheetsAPIError subclasses."""
        try:
            yield
        except SheetsAPIError:
            raise
        except SpreadsheetNotFound:
            raise SheetsNotFoundError(
                f"Spreadsheet not found: {document_id}",
                sheet_id=document_id,
                range_name=range_name,
                status_code=404,
            )
        except RefreshError as e:
            raise SheetsAuthError(
                f"Access token rejected: {e}",
                sheet_id=document_id,
                range_name=range_name,
                status_code=401,
            )
        except APIError as e:
            status_code = e.response.status_code if e.response is not None else None
            error_class = classify_status(status_code)
            try:
                response_data = e.response.json()
            except ValueError:
                response_data = None
            raise error_class(
                f"Sheets API error: {e}",
                sheet_id=document_id,
                range_name=range_name,
                status_code=status_code,
                response_data=response_data,
            )
    
    def _spreadsheet(self, document_id: str) -> gspread.Spreadsheet:
        spreadsheet = self._spreadsheets.get(document_id)
        if spreadsheet is None:
            with self._api_call(document_id):
                spreadsheet = self._client.open_by_key(document_id)
            self._spreadsheets[document_id] = spreadsheet
        return spreadsheet
    
    def _batch_update(self, document_id: str, requests: List[Dict[str, Any]],
                      range_name: Optional[str] = None) -> Dict[str, Any]:
        spreadsheet = self._spreadsheet(document_id)
        with self._api_call(document_id, range_name):
            return spreadsheet.batch_update({"requests": requests})
    
    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    
    def list_tabs(self, document_id: str) -> Dict[str, int]:
        """Return ``{tab title: sheet id}`` from document metadata."""
        spreadsheet = self._spreadsheet(document_id)
        with self._api_call(document_id):
            metadata = spreadsheet.fetch_sheet_metadata()
        
        return {
            sheet["properties"]["title"]: sheet["properties"]["sheetId"]
            for sheet in metadata.get("sheets", [])
        }
    
    def resolve_tab_id(self, document_id: str, tab_name: str) -> int:
        """
        Resolve a tab name to its sheet id.
        
        The id is looked up on every call rather than cached, so a tab that
        was deleted and recreated is always addressed correctly.
        
        Raises:
            SheetsNotFoundError: If the document has no tab with that name.
        """
        tab_id = self.list_tabs(document_id).get(tab_name)
        if tab_id is None:
            raise SheetsNotFoundError(
                f"Tab '{tab_name}' not found",
                sheet_id=document_id,
                range_name=tab_name,
                status_code=404,
            )
        return tab_id
    
    def read_rows(self, document_id: str, tab_name: str) -> List[Row]:
        """Read every row of a tab; row 0 is the header."""
        spreadsheet = self._spreadsheet(document_id)
        with self._api_call(document_id, tab_name):
            response = spreadsheet.values_get(absolute_range_name(tab_name))
        return response.get("values", [])
    
    @staticmethod
    def find_row_index(rows: Sequence[Row], match_value: Any, match_column: int = 0) -> Optional[int]:
        """Index of the first data row whose key cell equals ``match_value``."""
        key = cell_key(match_value)
        for index in range(1, len(rows)):
            row = rows[index]
            if len(row) > match_column and cell_key(row[match_column]) == key:
                return index
        return None
    
    # ------------------------------------------------------------------
    # Cell formatting
    # ------------------------------------------------------------------
    
    def _cell(self, value: Any) -> Dict[str, Any]:
        if isinstance(value, Decimal):
            value = float(value)
        
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            entered = {"numberValue": value}
        else:
            entered = {"stringValue": "" if value is None else str(value)}
        
        return {
            "userEnteredValue": entered,
            "userEnteredFormat": {
                "textFormat": {"fontFamily": self.font_family, "fontSize": self.data_font_size}
            },
        }
    
    def _header_cell(self, value: str, style: HeaderStyle) -> Dict[str, Any]:
        user_format: Dict[str, Any] = {
            "textFormat": {
                "fontFamily": self.font_family,
                "fontSize": style.font_size,
                "bold": style.bold,
            }
        }
        if style.background:
            user_format["backgroundColor"] = style.background
        
        return {"userEnteredValue": {"stringValue": value}, "userEnteredFormat": user_format}
    
    @staticmethod
    def _update_cells(tab_id: int, row_index: int, cells: List[Dict[str, Any]],
                      fields: str, column_index: int = 0) -> Dict[str, Any]:
        return {
            "updateCells": {
                "start": {"sheetId": tab_id, "rowIndex": row_index, "columnIndex": column_index},
                "rows": [{"values": cells}],
                "fields": fields,
            }
        }
    
    # ------------------------------------------------------------------
    # Row operations
    # ------------------------------------------------------------------
    
    def upsert_row(self, document_id: str, tab_name: str, row: Row, match_column: int = 0) -> int:
        """
        Replace the row whose key matches, or append after the last row.
        
        Args:
            document_id: Spreadsheet ID
            tab_name: Tab to write to
            row: Cell values in the tab's column order
            match_column: Index of the key column
            
        Returns:
            Zero-based index of the row written.
        """
        rows = self.read_rows(document_id, tab_name)
        row_index = self.find_row_index(rows, row[match_column], match_column)
        
        if row_index is None:
            # Never write over the header row
            row_index = max(len(rows), 1)
            action = "Appending"
        else:
            action = "Updating"
        
        tab_id = self.resolve_tab_id(document_id, tab_name)
        logger.debug(f"{action} row {row_index} in '{tab_name}' for key {row[match_column]}")
        
        request = self._update_cells(
            tab_id,
            row_index,
            [self._cell(value) for value in row],
            fields="userEnteredValue,userEnteredFormat.textFormat",
        )
        self._batch_update(document_id, [request], range_name=tab_name)
        return row_index
    
    def delete_row(self, document_id: str, tab_name: str, match_value: Any, match_column: int = 0) -> bool:
        """
        Delete the first row whose key matches.
        
        Returns:
            True if a row was deleted, False if nothing matched.
        """
        rows = self.read_rows(document_id, tab_name)
        row_index = self.find_row_index(rows, match_value, match_column)
        
        if row_index is None:
            logger.debug(f"No row with key {match_value} in '{tab_name}', nothing to delete")
            return False
        
        tab_id = self.resolve_tab_id(document_id, tab_name)
        self._batch_update(document_id, [self._delete_dimension(tab_id, row_index)], range_name=tab_name)
        logger.debug(f"Deleted row {row_index} from '{tab_name}' (key {match_value})")
        return True
    
    def delete_rows_matching(self, document_id: str, tab_name: str,
                             predicate: Callable[[str], bool], match_column: int = 0) -> int:
        """
        Delete every data row whose key satisfies ``predicate``.
        
        Rows are removed bottom-up in one batch so earlier indices stay valid.
        
        Returns:
            Number of rows deleted.
        """
        rows = self.read_rows(document_id, tab_name)
        indices = [
            index for index in range(1, len(rows))
            if len(rows[index]) > match_column and predicate(cell_key(rows[index][match_column]))
        ]
        
        if not indices:
            return 0
        
        tab_id = self.resolve_tab_id(document_id, tab_name)
        requests = [self._delete_dimension(tab_id, index) for index in sorted(indices, reverse=True)]
        self._batch_update(document_id, requests, range_name=tab_name)
        logger.debug(f"Deleted {len(indices)} rows from '{tab_name}'")
        return len(indices)
    
    @staticmethod
    def _delete_dimension(tab_id: int, row_index: int) -> Dict[str, Any]:
        return {
            "deleteDimension": {
                "range": {
                    "sheetId": tab_id,
                    "dimension": "ROWS",
                    "startIndex": row_index,
                    "endIndex": row_index + 1,
                }
            }
        }
    
    # ------------------------------------------------------------------
    # Tab operations
    # ------------------------------------------------------------------
    
    def add_tabs(self, document_id: str, tabs: Sequence[Tuple[str, int]]) -> Dict[str, int]:
        """
        Create several tabs in one request.
        
        Args:
            document_id: Spreadsheet ID
            tabs: ``(title, index)`` pairs
            
        Returns:
            ``{title: sheet id}`` for the created tabs.
        """
        requests = [
            {"addSheet": {"properties": {"title": title, "index": index}}}
            for title, index in tabs
        ]
        response = self._batch_update(document_id, requests)
        
        created: Dict[str, int] = {}
        for reply in response.get("replies", []):
            properties = reply.get("addSheet", {}).get("properties", {})
            if "title" in properties:
                created[properties["title"]] = properties["sheetId"]
        
        logger.info(f"Created {len(created)} tabs in spreadsheet {document_id}")
        return created
    
    def write_headers(self, document_id: str, tab_id: int, headers: Sequence[str],
                      style: HeaderStyle = SYNC_HEADER_STYLE, clear_to: int = 0) -> None:
        """
        Write a formatted header row.
        
        Args:
            clear_to: Blank trailing header cells up to this width
        """
        values = list(headers) + [""] * max(0, clear_to - len(headers))
        request = self._update_cells(
            tab_id,
            0,
            [self._header_cell(value, style) for value in values],
            fields="userEnteredValue,userEnteredFormat",
        )
        self._batch_update(document_id, [request])
    
    def ensure_tab_exists(self, document_id: str, tab_name: str, headers: Sequence[str],
                          style: HeaderStyle = SYNC_HEADER_STYLE) -> bool:
        """
        Make sure a tab exists with exactly the expected header row.
        
        A missing tab is created with headers; an existing tab whose header row
        differs is rewritten.
        
        Returns:
            True if the tab was created.
        """
        tabs = self.list_tabs(document_id)
        
        if tab_name not in tabs:
            logger.info(f"Tab '{tab_name}' missing in {document_id}, creating it")
            created = self.add_tabs(document_id, [(tab_name, len(tabs))])
            self.write_headers(document_id, created[tab_name], headers, style)
            return True
        
        rows = self.read_rows(document_id, tab_name)
        current = [cell_key(value) for value in rows[0]] if rows else []
        
        if current != list(headers):
            logger.warning(f"Header mismatch in '{tab_name}', rewriting headers")
            self.write_headers(document_id, tabs[tab_name], headers, style, clear_to=len(current))
        
        return False
    
    def delete_tab(self, document_id: str, tab_name: str) -> bool:
        """
        Delete a tab by name.
        
        Returns:
            True if deleted, False if the tab did not exist.
        """
        try:
            tab_id = self.resolve_tab_id(document_id, tab_name)
        except SheetsNotFoundError:
            return False
        
        self._batch_update(document_id, [{"deleteSheet": {"sheetId": tab_id}}], range_name=tab_name)
        return True
    
    def seed_named_range(self, document_id: str, tab_id: int, name: str,
                         values: Sequence[str], column_index: int, start_row: int = 1) -> None:
        """Write a vertical list of values and register it as a named range."""
        requests: List[Dict[str, Any]] = [
            self._update_cells(
                tab_id, start_row + offset, [self._cell(value)],
                fields="userEnteredValue", column_index=column_index,
            )
            for offset, value in enumerate(values)
        ]
        requests.append({
            "addNamedRange": {
                "namedRange": {
                    "name": name,
                    "range": {
                        "sheetId": tab_id,
                        "startRowIndex": start_row,
                        "endRowIndex": start_row + len(values),
                        "startColumnIndex": column_index,
                        "endColumnIndex": column_index + 1,
                    },
                }
            }
        })
        self._batch_update(document_id, requests)
