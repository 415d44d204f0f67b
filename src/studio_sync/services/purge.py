"""
Tenant purge orchestrator.

Removes firms whose trial expired without ever subscribing
(``subscribed_once`` is False and ``grace_until`` is strictly in the past).

For each expired firm:

1. delete the provisioned tabs from its spreadsheet (best effort, per tab)
2. delete its calendar (best effort, 404 counts as deleted)
3. delete the login accounts of its staff, keeping the firm creator's account
4. delete its relational rows in dependency order, see ``PURGE_STEPS``

Failures are logged and collected per firm; one firm's failure never stops
the others. Purge is idempotent and can be re-run.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence
import uuid

from sqlalchemy import or_
from sqlalchemy.orm import Session

from studio_sync.database.models import (
    AccountingEntry,
    Client,
    Event,
    EventAssignmentRate,
    EventClosingBalance,
    EventStaffAssignment,
    Expense,
    Firm,
    FirmMember,
    FirmPayment,
    FirmSubscription,
    Freelancer,
    FreelancerPayment,
    Payment,
    PricingConfig,
    Profile,
    Quotation,
    StaffPayment,
    Task,
    WaSession,
    utcnow,
)
from studio_sync.database.sheets import SheetsDocumentClient
from studio_sync.database.structure import TAB_NAMES
from studio_sync.services.calendar_service import GoogleCalendarService
from studio_sync.services.google_auth import AccessToken, GoogleAuthService
from studio_sync.services.identity import DatabaseIdentityProvider, IdentityProvider
from studio_sync.utils.logger import get_logger


logger = get_logger(__name__)


SheetsFactory = Callable[[AccessToken], SheetsDocumentClient]
CalendarFactory = Callable[[AccessToken], GoogleCalendarService]


@dataclass
class PurgeContext:
    """
    Ids collected for one firm before its rows are deleted.

    ``member_profile_ids`` leaves out the creator's profile, which survives the
    purge and may still be staffed in other firms.
    """

    firm_id: uuid.UUID
    creator_id: Optional[uuid.UUID]
    event_ids: List[uuid.UUID] = field(default_factory=list)
    member_profile_ids: List[uuid.UUID] = field(default_factory=list)
    freelancer_ids: List[uuid.UUID] = field(default_factory=list)


@dataclass(frozen=True)
class PurgeStep:
    """
    Delete rows of ``model`` whose ``column`` matches ``source(context)``.

    ``source`` returns either a single firm id or a list of ids; an empty list
    skips the step.
    """

    model: Any
    column: str
    source: Callable[[PurgeContext], Any]

    @property
    def name(self) -> str:
        return f"{self.model.__tablename__}.{self.column}"


def _firm(ctx: PurgeContext) -> uuid.UUID:
    return ctx.firm_id


# Order matters: rows are deleted before the rows they reference.
PURGE_STEPS: List[PurgeStep] = [
    PurgeStep(EventAssignmentRate, "event_id", lambda ctx: ctx.event_ids),
    PurgeStep(EventStaffAssignment, "event_id", lambda ctx: ctx.event_ids),
    PurgeStep(EventAssignmentRate, "staff_id", lambda ctx: ctx.member_profile_ids),
    PurgeStep(EventStaffAssignment, "staff_id", lambda ctx: ctx.member_profile_ids),
    PurgeStep(EventStaffAssignment, "freelancer_id", lambda ctx: ctx.freelancer_ids),
    PurgeStep(EventAssignmentRate, "firm_id", _firm),
    PurgeStep(EventStaffAssignment, "firm_id", _firm),
    PurgeStep(StaffPayment, "firm_id", _firm),
    PurgeStep(FreelancerPayment, "firm_id", _firm),
    PurgeStep(AccountingEntry, "firm_id", _firm),
    PurgeStep(Expense, "firm_id", _firm),
    PurgeStep(Task, "firm_id", _firm),
    PurgeStep(Payment, "firm_id", _firm),
    PurgeStep(Quotation, "firm_id", _firm),
    PurgeStep(PricingConfig, "firm_id", _firm),
    PurgeStep(EventClosingBalance, "firm_id", _firm),
    PurgeStep(Freelancer, "firm_id", _firm),
    PurgeStep(WaSession, "firm_id", _firm),
    PurgeStep(Event, "firm_id", _firm),
    PurgeStep(Client, "firm_id", _firm),
    PurgeStep(FirmPayment, "firm_id", _firm),
    PurgeStep(FirmMember, "firm_id", _firm),
    PurgeStep(Profile, "id", lambda ctx: ctx.member_profile_ids),
    PurgeStep(FirmSubscription, "firm_id", _firm),
    PurgeStep(Firm, "id", _firm),
]


@dataclass
class PurgeReport:
    """Outcome of a purge run."""

    purged_count: int = 0
    total_expired: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def add_error(self, firm_id: uuid.UUID, error: str, firm_name: Optional[str] = None) -> None:
        entry = {"tenantId": str(firm_id), "error": error}
        if firm_name:
            entry["firmName"] = firm_name
        self.errors.append(entry)

    def to_response(self) -> Dict[str, Any]:
        response: Dict[str, Any] = {
            "success": True,
            "message": "Purge completed",
            "purgedCount": self.purged_count,
            "totalExpired": self.total_expired,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.errors:
            response["errors"] = list(self.errors)
        return response


def _naive_utc(value: Optional[datetime]) -> datetime:
    if value is None:
        return utcnow()
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class TenantPurger:
    """
    Purges expired trial firms.

    Example:
        report = TenantPurger(db).purge_expired_tenants()
        print(report.purged_count, report.errors)
    """

    def __init__(self, db: Session,
                 auth_service: Optional[GoogleAuthService] = None,
                 sheets_factory: Optional[SheetsFactory] = None,
                 calendar_factory: Optional[CalendarFactory] = None,
                 identity_provider: Optional[IdentityProvider] = None,
                 steps: Optional[Sequence[PurgeStep]] = None):
        self.db = db
        self.auth_service = auth_service or GoogleAuthService()
        self.sheets_factory = sheets_factory or (lambda token: SheetsDocumentClient(access_token=token))
        self.calendar_factory = calendar_factory or GoogleCalendarService
        self.identity_provider = identity_provider or DatabaseIdentityProvider(db)
        self.steps = list(steps) if steps is not None else PURGE_STEPS
        self._token: Optional[AccessToken] = None

    def find_expired(self, now: Optional[datetime] = None) -> List[FirmSubscription]:
        """Subscriptions that never converted and whose grace period has ended."""
        cutoff = _naive_utc(now)
        return (
            self.db.query(FirmSubscription)
            .filter(
                FirmSubscription.subscribed_once.is_(False),
                FirmSubscription.grace_until.isnot(None),
                FirmSubscription.grace_until < cutoff,
            )
            .order_by(FirmSubscription.grace_until)
            .all()
        )

    def purge_expired_tenants(self, now: Optional[datetime] = None) -> PurgeReport:
        """
        Purge every expired firm.

        Never raises for a single firm's failure; those are collected in the report.
        """
        report = PurgeReport()
        expired = self.find_expired(now)
        report.total_expired = len(expired)
        self._token = None

        logger.info(f"Found {len(expired)} expired trial firms")

        for firm_id in [subscription.firm_id for subscription in expired]:
            firm = self.db.get(Firm, firm_id)
            firm_name = firm.name if firm is not None else None

            try:
                errors = self.purge_tenant(firm_id)
            except Exception as e:
                self.db.rollback()
                logger.error(f"Error purging firm {firm_id}: {e}")
                report.add_error(firm_id, str(e), firm_name)
                continue

            for error in errors:
                report.add_error(firm_id, error, firm_name)

            if self.db.get(Firm, firm_id) is None:
                report.purged_count += 1
                logger.info(f"Purged firm {firm_id} ({firm_name or 'Unknown'})")
            else:
                logger.error(f"Firm {firm_id} still present after purge, see errors")

        logger.info(
            f"Purge completed: {report.purged_count}/{report.total_expired} firms purged, "
            f"{len(report.errors)} errors"
        )
        return report

    def purge_tenant(self, firm_id: uuid.UUID) -> List[str]:
        """
        Purge one firm.

        Returns:
            Error messages of the steps that failed.
        """
        errors: List[str] = []
        firm = self.db.get(Firm, firm_id)
        creator_id = firm.created_by if firm is not None else None

        if firm is None:
            logger.warning(f"Firm {firm_id} row missing, removing leftover records only")
        elif firm.spreadsheet_id or firm.calendar_id:
            errors += self._cleanup_external(firm)

        ctx = self._collect(firm_id, creator_id)
        errors += self._delete_staff_accounts(ctx)
        errors += self._delete_rows(ctx)
        return errors

    def _access_token(self) -> AccessToken:
        if self._token is None or self._token.is_expired():
            self._token = self.auth_service.get_access_token()
        return self._token

    def _cleanup_external(self, firm: Firm) -> List[str]:
        errors: List[str] = []

        try:
            token = self._access_token()
        except Exception as e:
            logger.error(f"Skipping Google cleanup for firm {firm.id}: {e}")
            return [f"google_auth: {e}"]

        if firm.spreadsheet_id:
            errors += self._delete_tabs(self.sheets_factory(token), firm)

        if firm.calendar_id:
            try:
                self.calendar_factory(token).delete_calendar(firm.calendar_id)
            except Exception as e:
                logger.error(f"Failed to delete calendar {firm.calendar_id} of firm {firm.id}: {e}")
                errors.append(f"calendar: {e}")

        return errors

    def _delete_tabs(self, sheets: SheetsDocumentClient, firm: Firm) -> List[str]:
        errors: List[str] = []
        deleted = 0

        for tab_name in TAB_NAMES:
            try:
                if sheets.delete_tab(firm.spreadsheet_id, tab_name):
                    deleted += 1
            except Exception as e:
                logger.warning(f"Failed to delete tab '{tab_name}' of firm {firm.id}: {e}")
                errors.append(f"sheet '{tab_name}': {e}")

        logger.info(f"Deleted {deleted}/{len(TAB_NAMES)} tabs from spreadsheet {firm.spreadsheet_id}")
        return errors

    def _collect(self, firm_id: uuid.UUID, creator_id: Optional[uuid.UUID]) -> PurgeContext:
        ctx = PurgeContext(firm_id=firm_id, creator_id=creator_id)

        profiles = (
            self.db.query(Profile)
            .filter(or_(Profile.firm_id == firm_id, Profile.current_firm_id == firm_id))
            .all()
        )
        ctx.member_profile_ids = [
            profile.id for profile in profiles
            if creator_id is None or profile.user_id != creator_id
        ]
        ctx.event_ids = [row.id for row in self.db.query(Event.id).filter(Event.firm_id == firm_id)]
        ctx.freelancer_ids = [row.id for row in self.db.query(Freelancer.id).filter(Freelancer.firm_id == firm_id)]
        return ctx

    def _delete_staff_accounts(self, ctx: PurgeContext) -> List[str]:
        errors: List[str] = []
        user_ids = (
            self.db.query(Profile.user_id)
            .filter(
                Profile.id.in_(ctx.member_profile_ids),
                Profile.user_id.isnot(None),
            )
            .distinct()
            .all()
        ) if ctx.member_profile_ids else []

        for (user_id,) in user_ids:
            if user_id == ctx.creator_id:
                continue
            try:
                self.identity_provider.delete_user(user_id)
            except Exception as e:
                logger.error(f"Failed to delete user account {user_id} of firm {ctx.firm_id}: {e}")
                errors.append(f"user {user_id}: {e}")

        return errors

    def _delete_rows(self, ctx: PurgeContext) -> List[str]:
        errors: List[str] = []

        for step in self.steps:
            if step.model is Firm:
                errors += self._detach_creator(ctx)

            try:
                count = self._run_step(step, ctx)
            except Exception as e:
                self.db.rollback()
                logger.error(f"Purge step {step.name} failed for firm {ctx.firm_id}: {e}")
                errors.append(f"{step.name}: {e}")
                continue

            if count:
                logger.debug(f"Purge step {step.name}: deleted {count} rows for firm {ctx.firm_id}")

        self.db.expire_all()
        return errors

    def _run_step(self, step: PurgeStep, ctx: PurgeContext) -> int:
        value = step.source(ctx)
        if isinstance(value, list) and not value:
            return 0

        column = getattr(step.model, step.column)
        criterion = column.in_(value) if isinstance(value, list) else column == value

        count = self.db.query(step.model).filter(criterion).delete(synchronize_session=False)
        self.db.commit()
        return count

    def _detach_creator(self, ctx: PurgeContext) -> List[str]:
        """Point the creator's profile away from the firm so the firm row can go."""
        if ctx.creator_id is None:
            return []

        try:
            for column in (Profile.firm_id, Profile.current_firm_id):
                (
                    self.db.query(Profile)
                    .filter(Profile.user_id == ctx.creator_id, column == ctx.firm_id)
                    .update({column: None}, synchronize_session=False)
                )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to detach creator profile from firm {ctx.firm_id}: {e}")
            return [f"profiles.creator: {e}"]

        return []


def purge_expired_tenants(db: Session, now: Optional[datetime] = None, **kwargs) -> PurgeReport:
    """Module-level shortcut for ``TenantPurger(db, **kwargs).purge_expired_tenants(now)``."""
    return TenantPurger(db, **kwargs).purge_expired_tenants(now)
