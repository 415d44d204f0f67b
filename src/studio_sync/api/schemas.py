"""
Pydantic schemas for API request validation.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class SyncRequest(BaseModel):
    """Entity sync request."""
    model_config = ConfigDict(populate_by_name=True)
    
    item_type: str = Field(..., alias="itemType", min_length=1)
    item_id: str = Field(..., alias="itemId", min_length=1)
    firm_id: str = Field(..., alias="firmId", min_length=1)
    operation: str = "update"


class FirmCreateRequest(BaseModel):
    """Firm provisioning request."""
    model_config = ConfigDict(populate_by_name=True)
    
    firm_name: str = Field(..., alias="firmName", min_length=1, max_length=255)
    spreadsheet_input: str = Field(..., alias="spreadsheetInput", min_length=1)
    calendar_email: Optional[str] = Field(None, alias="calendarEmail")
    created_by: Optional[str] = Field(None, alias="createdBy")
    description: Optional[str] = None
    contact_phone: Optional[str] = Field(None, alias="contactPhone")
    contact_email: Optional[str] = Field(None, alias="contactEmail")
    header_left_content: Optional[str] = Field(None, alias="headerLeftContent")
    footer_content: Optional[str] = Field(None, alias="footerContent")
