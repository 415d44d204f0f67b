"""
Tenant provisioner.

Creates everything a new firm needs, in order:

1. ``google_auth`` - acquire an access token for the service account
2. ``sheets_setup`` - create the fixed tab set, write headers, seed dropdowns
3. ``calendar_creation`` - create the firm calendar and share it
4. ``database_creation`` - insert the firm, its trial subscription, link the
   creator's profile and initialize the messaging session

A failing phase raises ``ProvisioningError`` tagged with the phase name.
External resources from earlier phases are not rolled back; their ids are
carried on the error and logged for manual cleanup.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import timedelta
import re
from typing import Any, Callable, Dict, Iterator, List, Optional, Union
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from studio_sync.database.models import Firm, FirmSubscription, Profile, WaSession, utcnow
from studio_sync.database.sheets import HeaderStyle, SheetsDocumentClient, spreadsheet_url
from studio_sync.database.structure import DROPDOWN_COLUMN, DROPDOWN_RANGES, DROPDOWN_TAB, TAB_ORDER
from studio_sync.services.calendar_service import CalendarInfo, GoogleCalendarService
from studio_sync.services.google_auth import AccessToken, GoogleAuthService
from studio_sync.utils.config import get_config
from studio_sync.utils.exceptions import DatabaseError, ProvisioningError, ValidationError
from studio_sync.utils.logger import get_logger


logger = get_logger(__name__)


PHASE_VALIDATION = "validation"
PHASE_GOOGLE_AUTH = "google_auth"
PHASE_SHEETS_SETUP = "sheets_setup"
PHASE_CALENDAR_CREATION = "calendar_creation"
PHASE_DATABASE_CREATION = "database_creation"

SPREADSHEET_URL_PATTERN = re.compile(r"/spreadsheets/d/([a-zA-Z0-9-_]+)")
SPREADSHEET_ID_PATTERN = re.compile(r"^[a-zA-Z0-9-_]+$")

DEFAULT_CONTACT = "YOUR_FIRM_CONTACT"
DEFAULT_CONTACT_EMAIL = "YOUR_FIRM_CONTACT_EMAIL"
DEFAULT_TAGLINE = "YOUR_FIRM_TAGLINE"
DEFAULT_SESSION_TAGLINE = "Your memories, our passion"


SheetsFactory = Callable[[AccessToken], SheetsDocumentClient]
CalendarFactory = Callable[[AccessToken], GoogleCalendarService]


def extract_spreadsheet_id(value: str) -> str:
    """
    Accept a raw spreadsheet id or a Google Sheets URL.

    Raises:
        ValidationError: If no id can be extracted.
    """
    value = (value or "").strip()
    if not value:
        raise ValidationError("Google Spreadsheet ID or URL is required", field="spreadsheetInput")

    if "docs.google.com" in value or "/" in value:
        match = SPREADSHEET_URL_PATTERN.search(value)
        if not match:
            raise ValidationError("Invalid Google Sheets URL format", field="spreadsheetInput", value=value)
        return match.group(1)

    if SPREADSHEET_ID_PATTERN.match(value):
        return value

    raise ValidationError("Invalid spreadsheet ID format", field="spreadsheetInput", value=value)


@dataclass
class TenantMeta:
    """Firm details supplied by the creating user."""

    name: str
    created_by: Optional[uuid.UUID] = None
    description: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    header_left_content: Optional[str] = None
    footer_content: Optional[str] = None

    @property
    def header_text(self) -> str:
        if self.header_left_content:
            return self.header_left_content
        return (
            f"Contact: {self.contact_phone or DEFAULT_CONTACT}\n"
            f"Email: {self.contact_email or DEFAULT_CONTACT_EMAIL}"
        )

    @property
    def footer_text(self) -> str:
        if self.footer_content:
            return self.footer_content
        return (
            f"{self.name} | Contact: {self.contact_phone or DEFAULT_CONTACT} | "
            f"Email: {self.contact_email or DEFAULT_CONTACT_EMAIL}\n"
            f"{self.description or DEFAULT_TAGLINE}"
        )


@dataclass
class ProvisionResult:
    """Outcome of a successful provisioning run."""

    firm: Firm
    spreadsheet_id: str
    calendar: CalendarInfo
    tab_ids: Dict[str, int]
    calendar_shared_with: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def firm_id(self) -> uuid.UUID:
        return self.firm.id

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "firmId": str(self.firm.id),
            "firm": {
                "id": str(self.firm.id),
                "name": self.firm.name,
                "spreadsheet_id": self.firm.spreadsheet_id,
                "calendar_id": self.firm.calendar_id,
                "created_at": self.firm.created_at.isoformat() if self.firm.created_at else None,
            },
            "message": f"{self.firm.name} created successfully with Google Sheets and Calendar integration",
            "integrations": {
                "spreadsheet": {
                    "spreadsheetId": self.spreadsheet_id,
                    "spreadsheetUrl": spreadsheet_url(self.spreadsheet_id),
                    "sheetsCreated": list(self.tab_ids),
                },
                "calendar": {
                    "calendarId": self.calendar.calendar_id,
                    "calendarName": self.calendar.summary,
                    "calendarLink": self.calendar.link,
                    "sharedWith": self.calendar_shared_with,
                },
            },
            "warnings": list(self.warnings),
        }


class TenantProvisioner:
    """
    Provisions a new firm.

    Example:
        provisioner = TenantProvisioner(db)
        result = provisioner.provision_tenant(
            TenantMeta(name="Lens & Light", created_by=user_id),
            "https://docs.google.com/spreadsheets/d/abc123/edit",
            "owner@example.com",
        )
    """

    def __init__(self, db: Session,
                 auth_service: Optional[GoogleAuthService] = None,
                 sheets_factory: Optional[SheetsFactory] = None,
                 calendar_factory: Optional[CalendarFactory] = None):
        self.db = db
        self.config = get_config()
        self.auth_service = auth_service or GoogleAuthService()
        self.sheets_factory = sheets_factory or (lambda token: SheetsDocumentClient(access_token=token))
        self.calendar_factory = calendar_factory or GoogleCalendarService
        self.created_resources: Dict[str, Any] = {}

    @contextmanager
    def _phase(self, name: str) -> Iterator[None]:
        logger.info(f"Provisioning phase '{name}' started")
        try:
            yield
        except ProvisioningError:
            raise
        except Exception as e:
            if self.created_resources:
                logger.error(
                    f"Provisioning failed in phase '{name}': {e}. "
                    f"Created resources left for manual cleanup: {self.created_resources}"
                )
            else:
                logger.error(f"Provisioning failed in phase '{name}': {e}")
            raise ProvisioningError(
                getattr(e, "message", str(e)),
                phase=name,
                created_resources=dict(self.created_resources),
                cause=e,
            ) from e
        logger.info(f"Provisioning phase '{name}' completed")

    def provision_tenant(self, meta: TenantMeta, spreadsheet_input: str,
                         calendar_owner_email: Optional[str] = None) -> ProvisionResult:
        """
        Run all provisioning phases for a new firm.

        Args:
            meta: Firm details
            spreadsheet_input: Spreadsheet id or URL shared with the service account
            calendar_owner_email: Account that gets write access to the calendar

        Raises:
            ProvisioningError: Tagged with the failing phase.
        """
        self.created_resources = {}
        warnings: List[str] = []

        with self._phase(PHASE_VALIDATION):
            if not (meta.name or "").strip():
                raise ValidationError("Firm name is required", field="firmName")
            spreadsheet_id = extract_spreadsheet_id(spreadsheet_input)

        with self._phase(PHASE_GOOGLE_AUTH):
            token = self.auth_service.get_access_token()

        with self._phase(PHASE_SHEETS_SETUP):
            sheets = self.sheets_factory(token)
            tab_ids = self._setup_sheets(sheets, spreadsheet_id, warnings)

        with self._phase(PHASE_CALENDAR_CREATION):
            calendar_service = self.calendar_factory(token)
            calendar = calendar_service.create_calendar(meta.name)
            self.created_resources["calendar_id"] = calendar.calendar_id

            shared_with = None
            if calendar_owner_email:
                try:
                    calendar_service.share_calendar(calendar.calendar_id, calendar_owner_email)
                    shared_with = calendar_owner_email
                except Exception as e:
                    logger.warning(f"Calendar {calendar.calendar_id} created but sharing failed: {e}")
                    warnings.append(f"Calendar sharing with {calendar_owner_email} failed: {e}")
            else:
                warnings.append("No calendar owner email given; calendar not shared")

        with self._phase(PHASE_DATABASE_CREATION):
            firm = self._create_firm(meta, spreadsheet_id, calendar.calendar_id)
            self._link_creator_profile(meta, firm, warnings)
            self._init_messaging_session(meta, firm, warnings)

        logger.info(f"Firm '{firm.name}' ({firm.id}) provisioned with spreadsheet {spreadsheet_id}")

        return ProvisionResult(
            firm=firm,
            spreadsheet_id=spreadsheet_id,
            calendar=calendar,
            tab_ids=tab_ids,
            calendar_shared_with=shared_with,
            warnings=warnings,
        )

    def _setup_sheets(self, sheets: SheetsDocumentClient, spreadsheet_id: str,
                      warnings: List[str]) -> Dict[str, int]:
        tab_ids = sheets.add_tabs(spreadsheet_id, [(tab.title, tab.index) for tab in TAB_ORDER])
        self.created_resources["spreadsheet_id"] = spreadsheet_id
        self.created_resources["tab_ids"] = dict(tab_ids)

        header_style = HeaderStyle(font_size=self.config.sheets_header_font_size)
        for tab in TAB_ORDER:
            sheets.write_headers(spreadsheet_id, tab_ids[tab.title], tab.headers, header_style)
        logger.info(f"Wrote headers for {len(TAB_ORDER)} tabs in {spreadsheet_id}")

        # Dropdown lists are a convenience; the document is usable without them
        try:
            for offset, dropdown in enumerate(DROPDOWN_RANGES):
                sheets.seed_named_range(
                    spreadsheet_id,
                    tab_ids[DROPDOWN_TAB],
                    dropdown.name,
                    dropdown.values,
                    column_index=DROPDOWN_COLUMN + offset,
                )
        except Exception as e:
            logger.warning(f"Dropdown setup failed for {spreadsheet_id}: {e}")
            warnings.append(f"Dropdown setup failed: {e}")

        return tab_ids

    def _create_firm(self, meta: TenantMeta, spreadsheet_id: str, calendar_id: str) -> Firm:
        now = utcnow()
        trial_end = now + timedelta(days=self.config.trial_days)

        firm = Firm(
            name=meta.name.strip(),
            tagline=meta.description or None,
            description=meta.description or None,
            contact_phone=meta.contact_phone or None,
            contact_email=meta.contact_email or None,
            header_left_content=meta.header_text,
            footer_content=meta.footer_text,
            created_by=meta.created_by,
            spreadsheet_id=spreadsheet_id,
            calendar_id=calendar_id,
        )

        try:
            self.db.add(firm)
            self.db.flush()
            self.db.add(FirmSubscription(
                firm_id=firm.id,
                status="trial",
                plan_type="trial",
                subscribed_once=False,
                trial_start_at=now,
                trial_end_at=trial_end,
                grace_until=trial_end + timedelta(days=self.config.grace_days),
            ))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(f"Failed to create firm record: {e}", operation="insert", table="firms") from e

        self.db.refresh(firm)
        logger.info(f"Created firm {firm.id} with trial until {trial_end.isoformat()}")
        return firm

    def _link_creator_profile(self, meta: TenantMeta, firm: Firm, warnings: List[str]) -> None:
        if meta.created_by is None:
            return

        try:
            updated = (
                self.db.query(Profile)
                .filter(Profile.user_id == meta.created_by)
                .update({Profile.firm_id: firm.id, Profile.current_firm_id: firm.id}, synchronize_session=False)
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Profile update failed for user {meta.created_by}: {e}")
            warnings.append(f"Profile update failed: {e}")
            return

        if not updated:
            logger.warning(f"No profile found for user {meta.created_by}")
            warnings.append("Creator profile not found")

    def _init_messaging_session(self, meta: TenantMeta, firm: Firm, warnings: List[str]) -> None:
        try:
            session = self.db.get(WaSession, firm.id) or WaSession(id=firm.id)
            session.firm_id = firm.id
            session.firm_name = firm.name
            session.firm_tagline = meta.description or DEFAULT_SESSION_TAGLINE
            session.contact_info = firm.header_left_content
            session.footer_signature = firm.footer_content
            session.status = "disconnected"
            session.reconnect_enabled = False
            self.db.add(session)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Messaging session setup failed for firm {firm.id}: {e}")
            warnings.append(f"Messaging session setup failed: {e}")


def provision_tenant(db: Session, meta: TenantMeta, spreadsheet_input: str,
                     calendar_owner_email: Optional[str] = None, **kwargs) -> ProvisionResult:
    """Module-level shortcut for ``TenantProvisioner(db, **kwargs).provision_tenant(...)``."""
    return TenantProvisioner(db, **kwargs).provision_tenant(meta, spreadsheet_input, calendar_owner_email)


def parse_creator(value: Union[str, uuid.UUID, None]) -> Optional[uuid.UUID]:
    """Parse the creating user id; raises ``ValidationError`` on malformed ids."""
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError("createdBy must be a UUID", field="createdBy", value=value)
