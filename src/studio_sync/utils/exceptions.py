"""
Custom exceptions for Studio Sync.

Defines application-specific exception classes for configuration problems,
Google API failures (Sheets, Calendar, OAuth token endpoint), entity sync
failures and phase-tagged provisioning failures.
"""

from typing import Optional, Dict, Any, List, Type


class StudioSyncError(Exception):
    """Base exception for all Studio Sync errors."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception with message and optional details.
        
        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(StudioSyncError):
    """Raised when configuration or the service credential is invalid or missing."""
    pass


class AuthenticationError(StudioSyncError):
    """Raised when an access token could not be acquired."""
    
    def __init__(self, message: str, attempts: Optional[int] = None,
                 last_error: Optional[BaseException] = None):
        """
        Initialize authentication error.
        
        Args:
            message: Error message
            attempts: Number of attempts made before giving up
            last_error: Underlying error of the final attempt
        """
        details = {}
        if attempts is not None:
            details["attempts"] = attempts
        if last_error is not None:
            details["last_error"] = str(last_error)
        
        super().__init__(message, details)
        self.attempts = attempts
        self.last_error = last_error


class APIError(StudioSyncError):
    """Base class for API-related errors."""
    
    def __init__(self, message: str, status_code: Optional[int] = None, 
                 response_data: Optional[Dict[str, Any]] = None):
        """
        Initialize API error.
        
        Args:
            message: Error message
            status_code: HTTP status code
            response_data: API response data
        """
        details = {}
        if status_code:
            details["status_code"] = status_code
        if response_data:
            details["response_data"] = response_data
            
        super().__init__(message, details)
        self.status_code = status_code
        self.response_data = response_data


class SheetsAPIError(APIError):
    """Google Sheets API failure not covered by a more specific subclass."""
    
    def __init__(self, message: str, sheet_id: Optional[str] = None,
                 range_name: Optional[str] = None,
                 status_code: Optional[int] = None,
                 response_data: Optional[Dict[str, Any]] = None):
        """
        Initialize Sheets API error.
        
        Args:
            message: Error message
            sheet_id: Spreadsheet (document) ID
            range_name: Tab or range that failed
            status_code: HTTP status code
            response_data: API response data
        """
        super().__init__(message, status_code, response_data)
        self.sheet_id = sheet_id
        self.range_name = range_name
        
        if sheet_id:
            self.details["sheet_id"] = sheet_id
        if range_name:
            self.details["range_name"] = range_name


class SheetsNotFoundError(SheetsAPIError):
    """Spreadsheet or tab not found."""
    pass


class SheetsAuthError(SheetsAPIError):
    """Access token rejected by the Sheets API (401)."""
    pass


class SheetsPermissionError(SheetsAPIError):
    """Permission denied for the spreadsheet (403)."""
    pass


class SheetsServerError(SheetsAPIError):
    """Sheets API server-side failure (5xx)."""
    pass


class CalendarAPIError(APIError):
    """Raised when a Google Calendar API call fails."""
    
    def __init__(self, message: str, calendar_id: Optional[str] = None,
                 status_code: Optional[int] = None,
                 response_data: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code, response_data)
        self.calendar_id = calendar_id
        
        if calendar_id:
            self.details["calendar_id"] = calendar_id


class ValidationError(StudioSyncError):
    """Raised when request data validation fails."""
    
    def __init__(self, message: str, field: Optional[str] = None,
                 value: Optional[Any] = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
            
        super().__init__(message, details)
        self.field = field
        self.value = value


class NotFoundError(StudioSyncError):
    """Raised when a relational record required by an operation is missing."""
    
    def __init__(self, message: str, entity_type: Optional[str] = None,
                 entity_id: Optional[str] = None):
        details = {}
        if entity_type:
            details["entity_type"] = entity_type
        if entity_id:
            details["entity_id"] = entity_id
        
        super().__init__(message, details)
        self.entity_type = entity_type
        self.entity_id = entity_id


class UnsupportedEntityError(ValidationError):
    """Raised when a sync request names an unknown entity type."""
    
    def __init__(self, entity_type: str):
        super().__init__(f"Unsupported item type: {entity_type}", field="itemType", value=entity_type)
        self.entity_type = entity_type


class SyncError(StudioSyncError):
    """Raised when synchronizing one entity into the firm's spreadsheet fails."""
    
    def __init__(self, message: str, entity_type: Optional[str] = None,
                 entity_id: Optional[str] = None, operation: Optional[str] = None,
                 cause: Optional[BaseException] = None):
        """
        Initialize sync error.
        
        Args:
            message: Error message
            entity_type: Entity type being synchronized
            entity_id: Entity identifier
            operation: create, update or delete
            cause: Underlying error raised by the handler
        """
        details = {}
        if entity_type:
            details["entity_type"] = entity_type
        if entity_id:
            details["entity_id"] = entity_id
        if operation:
            details["operation"] = operation
        
        super().__init__(message, details)
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.operation = operation
        self.cause = cause


class ProvisioningError(StudioSyncError):
    """
    Raised when a provisioning phase fails.
    
    External resources created by earlier phases are not rolled back; their
    identifiers are carried in ``created_resources`` for manual cleanup.
    """
    
    def __init__(self, message: str, phase: str,
                 created_resources: Optional[Dict[str, Any]] = None,
                 cause: Optional[BaseException] = None):
        details = {"phase": phase}
        if created_resources:
            details["created_resources"] = created_resources
        
        super().__init__(message, details)
        self.phase = phase
        self.created_resources = created_resources or {}
        self.cause = cause


class DatabaseError(StudioSyncError):
    """Raised when database operations fail."""
    
    def __init__(self, message: str, operation: Optional[str] = None,
                 table: Optional[str] = None):
        """
        Initialize database error.
        
        Args:
            message: Error message
            operation: Database operation that failed
            table: Table involved in operation
        """
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
            
        super().__init__(message, details)
        self.operation = operation
        self.table = table


def classify_status(status_code: Optional[int]) -> Type[SheetsAPIError]:
    """
    Map an HTTP status code to the matching Sheets error class.
    
    Args:
        status_code: HTTP status code returned by the API
        
    Returns:
        Exception class to raise
    """
    if status_code == 404:
        return SheetsNotFoundError
    if status_code == 401:
        return SheetsAuthError
    if status_code == 403:
        return SheetsPermissionError
    if status_code is not None and status_code >= 500:
        return SheetsServerError
    return SheetsAPIError


def handle_api_error(response, endpoint: Optional[str] = None,
                     calendar_id: Optional[str] = None) -> None:
    """
    Handle a Calendar HTTP response and raise the appropriate API error.
    
    Args:
        response: HTTP response object (requests or httpx)
        endpoint: API endpoint that was called
        calendar_id: Calendar the call referred to
        
    Raises:
        CalendarAPIError: Always, with a message chosen by status class.
    """
    status_code = getattr(response, 'status_code', None)
    
    try:
        response_data = response.json()
    except ValueError:
        response_data = {"text": getattr(response, "text", "")}
    
    if status_code == 401:
        message = "Calendar API authentication failed"
    elif status_code == 403:
        message = "Calendar API access forbidden"
    elif status_code == 404:
        message = "Calendar not found"
    elif status_code and status_code >= 500:
        message = f"Calendar API server error: {status_code}"
    else:
        message = f"Calendar API request failed: {status_code}"
    
    if endpoint:
        message = f"{message} ({endpoint})"
    
    raise CalendarAPIError(
        message,
        calendar_id=calendar_id,
        status_code=status_code,
        response_data=response_data,
    )


__all__: List[str] = [
    "StudioSyncError",
    "ConfigurationError",
    "AuthenticationError",
    "APIError",
    "SheetsAPIError",
    "SheetsNotFoundError",
    "SheetsAuthError",
    "SheetsPermissionError",
    "SheetsServerError",
    "CalendarAPIError",
    "ValidationError",
    "NotFoundError",
    "UnsupportedEntityError",
    "SyncError",
    "ProvisioningError",
    "DatabaseError",
    "classify_status",
    "handle_api_error",
]
