"""
Unit tests for the expired-firm purge
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from studio_sync.database.models import (
    Client,
    Event,
    EventAssignmentRate,
    EventStaffAssignment,
    Expense,
    Firm,
    FirmMember,
    FirmSubscription,
    Freelancer,
    Payment,
    Profile,
    Quotation,
    Task,
    User,
    WaSession,
)
from studio_sync.database.structure import TAB_NAMES
from studio_sync.services.identity import DatabaseIdentityProvider, IdentityProvider
from studio_sync.services.purge import (
    PURGE_STEPS,
    PurgeReport,
    PurgeStep,
    TenantPurger,
    _firm,
    purge_expired_tenants,
)
from studio_sync.utils.exceptions import AuthenticationError, CalendarAPIError


NOW = datetime(2026, 5, 1, 3, 0, 0)


@pytest.fixture
def purger(db_session, auth_service, sheets_factory, calendar_factory):
    return TenantPurger(
        db_session,
        auth_service=auth_service,
        sheets_factory=sheets_factory,
        calendar_factory=calendar_factory,
    )


@pytest.fixture
def provisioned_document(spreadsheet):
    spreadsheet.add_tab("Sheet1")
    for title in TAB_NAMES:
        spreadsheet.add_tab(title)
    return spreadsheet


def populate(db_session, firm):
    """Give a firm staff, records and memberships; returns the staff user"""
    staff_user = User(email=f"staff-{firm.id.hex[:8]}@example.com")
    db_session.add(staff_user)
    db_session.flush()

    staff = Profile(user_id=staff_user.id, full_name="Kiran", firm_id=firm.id, current_firm_id=firm.id)
    client = Client(firm_id=firm.id, name="Asha Rao")
    freelancer = Freelancer(firm_id=firm.id, full_name="Dev")
    db_session.add_all([staff, client, freelancer])
    db_session.flush()

    event = Event(firm_id=firm.id, client_id=client.id, title="Rao Reception", total_amount=Decimal("1000"))
    db_session.add(event)
    db_session.flush()

    db_session.add_all([
        EventStaffAssignment(firm_id=firm.id, event_id=event.id, staff_id=staff.id, role="Photographer"),
        EventStaffAssignment(firm_id=firm.id, event_id=event.id, freelancer_id=freelancer.id,
                             role="Cinematographer"),
        EventAssignmentRate(firm_id=firm.id, event_id=event.id, staff_id=staff.id, rate=Decimal("500")),
        Payment(firm_id=firm.id, event_id=event.id, amount=Decimal("500")),
        Task(firm_id=firm.id, title="Edit", event_id=event.id),
        Expense(firm_id=firm.id, amount=Decimal("100")),
        Quotation(firm_id=firm.id, client_id=client.id, title="Package A"),
        FirmMember(firm_id=firm.id, user_id=staff_user.id, role="member"),
        WaSession(id=firm.id, firm_id=firm.id),
    ])
    db_session.commit()
    return staff_user


def expired(make_firm, name, **kwargs):
    return make_firm(name=name, grace_until=NOW - timedelta(days=1), **kwargs)


class TestFindExpired:
    """Test purge eligibility"""

    def test_selection(self, purger, make_firm):
        a = expired(make_firm, "Expired A")
        b = make_firm(name="Expired B", grace_until=NOW - timedelta(days=10))
        make_firm(name="Boundary", grace_until=NOW)
        make_firm(name="Subscribed", grace_until=NOW - timedelta(days=30), subscribed_once=True)
        make_firm(name="Active", grace_until=NOW + timedelta(days=2))

        found = purger.find_expired(NOW)

        assert [s.firm_id for s in found] == [b.id, a.id]

    def test_missing_grace_until_never_expires(self, purger, make_firm, db_session):
        firm = make_firm(name="No grace")
        subscription = db_session.query(FirmSubscription).filter_by(firm_id=firm.id).one()
        subscription.grace_until = None
        db_session.commit()

        assert purger.find_expired(NOW + timedelta(days=365)) == []

    def test_aware_reference_time(self, purger, make_firm):
        firm = expired(make_firm, "Expired A")

        found = purger.find_expired(NOW.replace(tzinfo=timezone.utc))

        assert [s.firm_id for s in found] == [firm.id]


class TestPurgeSteps:

    def test_children_before_parents(self):
        names = [step.name for step in PURGE_STEPS]

        assert names.index("event_staff_assignments.event_id") < names.index("events.firm_id")
        assert names.index("event_assignment_rates.event_id") < names.index("events.firm_id")
        assert names.index("payments.firm_id") < names.index("events.firm_id")
        assert names.index("events.firm_id") < names.index("clients.firm_id")
        assert names.index("event_staff_assignments.freelancer_id") < names.index("freelancers.firm_id")
        assert names.index("profiles.id") < names.index("firms.id")
        assert names.index("firm_subscriptions.firm_id") < names.index("firms.id")
        assert names[-1] == "firms.id"


class TestPurgeExpiredTenants:
    """Test a full purge run"""

    @pytest.mark.foreign_keys
    def test_purges_firm_and_keeps_creator(self, purger, make_firm, db_session, provisioned_document):
        firm = expired(make_firm, "Expired A")
        firm_id, creator_id = firm.id, firm.created_by
        staff_user = populate(db_session, firm)
        staff_user_id = staff_user.id

        report = purger.purge_expired_tenants(NOW)

        assert (report.purged_count, report.total_expired, report.errors) == (1, 1, [])
        assert db_session.get(Firm, firm_id) is None
        for model in (Client, Event, EventStaffAssignment, EventAssignmentRate, Payment, Task,
                      Expense, Quotation, FirmMember, FirmSubscription, Freelancer):
            assert db_session.query(model).filter(model.firm_id == firm_id).count() == 0, model.__tablename__
        assert db_session.get(WaSession, firm_id) is None

        assert db_session.get(User, staff_user_id) is None
        assert db_session.query(Profile).filter_by(user_id=staff_user_id).count() == 0

        assert db_session.get(User, creator_id) is not None
        creator_profile = db_session.query(Profile).filter_by(user_id=creator_id).one()
        assert creator_profile.firm_id is None
        assert creator_profile.current_firm_id is None

    @pytest.mark.foreign_keys
    def test_creator_keeps_assignments_in_other_firms(self, purger, make_firm, db_session, provisioned_document):
        expired_firm = expired(make_firm, "Expired A")
        populate(db_session, expired_firm)
        live = make_firm(name="Live B", spreadsheet_id="doc-b", calendar_id=None,
                         grace_until=NOW + timedelta(days=5))
        live_id = live.id
        creator_profile_id = db_session.query(Profile).filter_by(user_id=expired_firm.created_by).one().id

        event = Event(firm_id=live_id, title="Mehta Wedding", total_amount=Decimal("2000"))
        db_session.add(event)
        db_session.flush()
        db_session.add_all([
            EventStaffAssignment(firm_id=live_id, event_id=event.id, staff_id=creator_profile_id,
                                 role="Photographer"),
            EventAssignmentRate(firm_id=live_id, event_id=event.id, staff_id=creator_profile_id,
                                rate=Decimal("750")),
        ])
        db_session.commit()

        report = purger.purge_expired_tenants(NOW)

        assert (report.purged_count, report.errors) == (1, [])
        assert db_session.query(EventStaffAssignment).filter_by(firm_id=live_id).count() == 1
        assert db_session.query(EventAssignmentRate).filter_by(firm_id=live_id).count() == 1
        assert db_session.get(Profile, creator_profile_id) is not None

    def test_deletes_provisioned_tabs_and_calendar(self, purger, make_firm, provisioned_document, calendar_service):
        firm = expired(make_firm, "Expired A")
        calendar_id = firm.calendar_id

        purger.purge_expired_tenants(NOW)

        assert provisioned_document.titles() == ["Sheet1"]
        calendar_service.delete_calendar.assert_called_once_with(calendar_id)

    def test_leaves_other_firms_alone(self, purger, make_firm, db_session, provisioned_document):
        expired(make_firm, "Expired A")
        active = make_firm(name="Active", spreadsheet_id="doc-active", calendar_id=None,
                           grace_until=NOW + timedelta(days=1))
        active_id = active.id
        db_session.add(Client(firm_id=active_id, name="Keep me"))
        db_session.commit()

        purger.purge_expired_tenants(NOW)

        assert db_session.get(Firm, active_id) is not None
        assert db_session.query(Client).filter_by(firm_id=active_id).count() == 1

    def test_calendar_failure_is_isolated(self, purger, make_firm, db_session, calendar_service, provisioned_document):
        a = expired(make_firm, "Expired A", calendar_id="cal-a")
        b = make_firm(name="Expired B", spreadsheet_id="doc-b", calendar_id="cal-b",
                      grace_until=NOW - timedelta(hours=1))
        a_id, b_id = a.id, b.id

        def delete_calendar(calendar_id):
            if calendar_id == "cal-a":
                raise CalendarAPIError("Calendar API access forbidden", calendar_id=calendar_id, status_code=403)
            return True
        calendar_service.delete_calendar.side_effect = delete_calendar

        report = purger.purge_expired_tenants(NOW)

        assert report.purged_count == 2
        assert len(report.errors) == 1
        assert report.errors[0]["tenantId"] == str(a_id)
        assert report.errors[0]["firmName"] == "Expired A"
        assert report.errors[0]["error"].startswith("calendar: Calendar API access forbidden")
        assert db_session.get(Firm, a_id) is None
        assert db_session.get(Firm, b_id) is None

    def test_tab_failure_does_not_stop_other_tabs(self, purger, make_firm, provisioned_document):
        expired(make_firm, "Expired A")
        provisioned_document.fail_delete_titles["Reports"] = 500

        report = purger.purge_expired_tenants(NOW)

        assert provisioned_document.titles() == ["Sheet1", "Reports"]
        assert report.purged_count == 1
        assert [e["error"][:17] for e in report.errors] == ["sheet 'Reports': "]

    def test_auth_failure_skips_google_cleanup(self, purger, make_firm, auth_service, provisioned_document,
                                               calendar_service, db_session):
        firm = expired(make_firm, "Expired A")
        firm_id = firm.id
        auth_service.get_access_token.side_effect = AuthenticationError("Google Auth failed after 3 attempts")

        report = purger.purge_expired_tenants(NOW)

        assert report.errors[0]["error"].startswith("google_auth: Google Auth failed")
        assert len(provisioned_document.titles()) == len(TAB_NAMES) + 1
        calendar_service.delete_calendar.assert_not_called()
        assert db_session.get(Firm, firm_id) is None

    def test_token_shared_across_firms(self, purger, make_firm, auth_service, provisioned_document):
        expired(make_firm, "Expired A")
        expired(make_firm, "Expired B")

        purger.purge_expired_tenants(NOW)

        assert auth_service.get_access_token.call_count == 1

    def test_firm_without_google_resources(self, purger, make_firm, auth_service):
        expired(make_firm, "Bare", spreadsheet_id=None, calendar_id=None)

        report = purger.purge_expired_tenants(NOW)

        assert report.purged_count == 1
        auth_service.get_access_token.assert_not_called()

    def test_identity_failure_is_recorded(self, db_session, make_firm, auth_service, sheets_factory,
                                          calendar_factory, provisioned_document):
        firm = expired(make_firm, "Expired A")
        populate(db_session, firm)
        identity = MagicMock(spec=IdentityProvider)
        identity.delete_user.side_effect = RuntimeError("identity service unavailable")
        purger = TenantPurger(db_session, auth_service, sheets_factory, calendar_factory, identity_provider=identity)

        report = purger.purge_expired_tenants(NOW)

        assert report.purged_count == 1
        assert "identity service unavailable" in report.errors[0]["error"]

    def test_failing_step_does_not_stop_the_rest(self, db_session, make_firm, auth_service, sheets_factory,
                                                 calendar_factory, provisioned_document):
        firm = expired(make_firm, "Expired A")
        firm_id = firm.id
        steps = [PurgeStep(Quotation, "no_such_column", _firm)] + PURGE_STEPS
        purger = TenantPurger(db_session, auth_service, sheets_factory, calendar_factory, steps=steps)

        report = purger.purge_expired_tenants(NOW)

        assert report.purged_count == 1
        assert report.errors[0]["error"].startswith("quotations.no_such_column:")
        assert db_session.get(Firm, firm_id) is None

    def test_rerun_is_noop(self, purger, make_firm, provisioned_document):
        expired(make_firm, "Expired A")
        purger.purge_expired_tenants(NOW)

        report = purger.purge_expired_tenants(NOW)

        assert (report.purged_count, report.total_expired) == (0, 0)

    def test_module_shortcut(self, db_session, make_firm, auth_service, sheets_factory, calendar_factory,
                             provisioned_document):
        expired(make_firm, "Expired A")

        report = purge_expired_tenants(db_session, NOW, auth_service=auth_service,
                                       sheets_factory=sheets_factory, calendar_factory=calendar_factory)

        assert report.purged_count == 1


class TestPurgeReport:

    def test_response_without_errors(self):
        report = PurgeReport(purged_count=2, total_expired=2)

        response = report.to_response()

        assert response["success"] is True
        assert response["message"] == "Purge completed"
        assert (response["purgedCount"], response["totalExpired"]) == (2, 2)
        assert "errors" not in response

    def test_response_with_errors(self):
        report = PurgeReport(total_expired=1)
        report.add_error("f-1", "calendar: gone")

        assert report.to_response()["errors"] == [{"tenantId": "f-1", "error": "calendar: gone"}]


class TestDatabaseIdentityProvider:

    def test_delete_user(self, db_session):
        user = User(email="staff@example.com")
        db_session.add(user)
        db_session.commit()
        user_id = user.id
        provider = DatabaseIdentityProvider(db_session)

        assert provider.delete_user(user_id) is True
        assert provider.delete_user(user_id) is False

    @pytest.mark.foreign_keys
    def test_delete_user_detaches_profile_and_memberships(self, db_session, firm):
        user = User(email="staff@example.com")
        db_session.add(user)
        db_session.flush()
        profile = Profile(user_id=user.id, full_name="Kiran", firm_id=firm.id, current_firm_id=firm.id)
        db_session.add_all([profile, FirmMember(firm_id=firm.id, user_id=user.id, role="member")])
        db_session.commit()
        user_id, profile_id = user.id, profile.id

        DatabaseIdentityProvider(db_session).delete_user(user_id)

        db_session.expire_all()
        assert db_session.get(Profile, profile_id).user_id is None
        assert db_session.query(FirmMember).filter_by(user_id=user_id).count() == 0
