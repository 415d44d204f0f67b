"""
Unit tests for event rows: payment status, multi-day expansion and crew grouping
"""
from datetime import date
from decimal import Decimal

import pytest

from studio_sync.database import structure
from studio_sync.database.models import (
    Client,
    Event,
    EventClosingBalance,
    EventStaffAssignment,
    Freelancer,
    Payment,
    Profile,
)
from studio_sync.services.sync_handlers.event import (
    EventHandler,
    balance_due,
    day_key,
    day_title,
    group_crew,
    is_event_key,
    payment_status,
)
from studio_sync.utils.exceptions import SheetsAPIError

from fakes import DOCUMENT_ID


# Column positions in Master Events
TITLE, TYPE, DATE = 1, 2, 3
PHOTOGRAPHERS, CINEMATOGRAPHERS = 7, 8
ADVANCE, COLLECTED, CLOSED, BALANCE, TOTAL, STATUS = 12, 13, 14, 15, 16, 17
REMARKS = 20


class TestPaymentStatus:
    """Test payment status derivation"""

    @pytest.mark.parametrize("total,advance,collected,closed,expected", [
        (10000, 2000, 3000, 0, "Partial"),
        (10000, 5000, 5000, 0, "Paid"),
        (10000, 0, 0, 0, "Pending"),
        (10000, 0, 2500, 0, "Partial"),
        (10000, 4000, 0, 6000, "Paid"),
        (0, 0, 0, 0, "Paid"),
        (10000, 6000, 6000, 0, "Paid"),
    ])
    def test_status(self, total, advance, collected, closed, expected):
        assert payment_status(total, advance, collected, closed) == expected

    def test_balance_never_negative(self):
        assert balance_due(10000, 2000, 3000) == 5000
        assert balance_due(10000, 8000, 5000) == 0


class TestDayKeys:

    def test_single_day_uses_plain_id(self):
        assert day_key("e1", 1, 1) == "e1"
        assert day_title("Sharma Wedding", 1, 1) == "Sharma Wedding"

    def test_multi_day(self):
        assert day_key("e1", 2, 3) == "e1-day2"
        assert day_title("Sharma Wedding", 2, 3) == "Sharma Wedding - DAY 02"

    def test_is_event_key(self):
        belongs = is_event_key("e1")

        assert belongs("e1")
        assert belongs("e1-day12")
        assert not belongs("e10")
        assert not belongs("e2-day1")


class TestGroupCrew:

    def test_groups_by_day_and_role_without_duplicates(self):
        assignments = [
            EventStaffAssignment(staff_id="s1", role="Photographer", day_number=1),
            EventStaffAssignment(staff_id="s1", role="Photographer", day_number=1),
            EventStaffAssignment(freelancer_id="f1", role="Cinematographer", day_number=2),
            EventStaffAssignment(staff_id="s2", role="Photographer", day_number=None),
            EventStaffAssignment(staff_id="s1", role="Lighting", day_number=1),
            EventStaffAssignment(staff_id="gone", role="Drone Pilot", day_number=2),
        ]
        names = {"s1": "Kiran", "s2": "Meera", "f1": "Dev"}

        crew = group_crew(assignments, names)

        assert crew[1]["Photographer"] == ["Kiran", "Meera"]
        assert crew[2]["Cinematographer"] == ["Dev"]
        assert crew[2]["Drone Pilot"] == ["Unknown Staff"]
        assert "Lighting" not in crew[1]


@pytest.fixture
def wedding(db_session, firm):
    """Three-day wedding with crew on days 1 and 2 and one payment"""
    client = Client(firm_id=firm.id, name="Priya Sharma", phone="9845000001")
    db_session.add(client)
    db_session.flush()

    event = Event(
        firm_id=firm.id,
        client_id=client.id,
        title="Sharma Wedding",
        event_type="Wedding",
        event_date=date(2026, 2, 10),
        venue="Palace Grounds",
        total_amount=Decimal("10000"),
        advance_amount=Decimal("3000"),
        total_days=3,
        photo_editing_status=True,
    )
    db_session.add(event)
    db_session.flush()

    kiran = Profile(full_name="Kiran", role="Photographer", firm_id=firm.id)
    dev = Freelancer(firm_id=firm.id, full_name="Dev", role="Cinematographer")
    db_session.add_all([kiran, dev])
    db_session.flush()

    db_session.add_all([
        EventStaffAssignment(firm_id=firm.id, event_id=event.id, staff_id=kiran.id,
                             role="Photographer", day_number=1),
        EventStaffAssignment(firm_id=firm.id, event_id=event.id, freelancer_id=dev.id,
                             role="Cinematographer", day_number=2),
        Payment(firm_id=firm.id, event_id=event.id, amount=Decimal("2000")),
    ])
    db_session.commit()
    return event


@pytest.fixture
def handler(db_session, sheets, firm):
    return EventHandler(db_session, sheets, DOCUMENT_ID, firm.id)


class TestEventHandler:
    """Test event rows in Master Events and type tabs"""

    def test_multi_day_event_writes_one_row_per_day(self, handler, spreadsheet, wedding):
        summary = handler.sync("create", wedding.id)

        event_id = str(wedding.id)
        rows = spreadsheet.data_rows(structure.MASTER_EVENTS)

        assert [row[0] for row in rows] == [f"{event_id}-day1", f"{event_id}-day2", f"{event_id}-day3"]
        assert [row[TITLE] for row in rows] == [
            "Sharma Wedding - DAY 01",
            "Sharma Wedding - DAY 02",
            "Sharma Wedding - DAY 03",
        ]
        assert [row[DATE] for row in rows] == ["2026-02-10", "2026-02-11", "2026-02-12"]
        assert summary.message == 'Event "Sharma Wedding" created successfully'

    def test_crew_listed_per_day(self, handler, spreadsheet, wedding):
        handler.sync("create", wedding.id)

        rows = spreadsheet.data_rows(structure.MASTER_EVENTS)

        assert rows[0][PHOTOGRAPHERS] == "Kiran"
        assert rows[0][CINEMATOGRAPHERS] == ""
        assert rows[1][CINEMATOGRAPHERS] == "Dev"
        assert rows[2][PHOTOGRAPHERS] == ""

    def test_payment_columns(self, handler, spreadsheet, wedding):
        handler.sync("create", wedding.id)

        row = spreadsheet.data_rows(structure.MASTER_EVENTS)[0]

        assert row[ADVANCE] == "3000"
        assert row[COLLECTED] == "2000"
        assert row[CLOSED] == "0"
        assert row[BALANCE] == "5000"
        assert row[TOTAL] == "10000"
        assert row[STATUS] == "Partial"
        assert row[REMARKS] == "Day 1/3"

    def test_closing_balance_settles_event(self, handler, spreadsheet, wedding, db_session):
        db_session.add(EventClosingBalance(firm_id=wedding.firm_id, event_id=wedding.id,
                                           closing_amount=Decimal("5000")))
        db_session.commit()

        handler.sync("update", wedding.id)

        row = spreadsheet.data_rows(structure.MASTER_EVENTS)[0]
        assert row[CLOSED] == "5000"
        assert row[BALANCE] == "0"
        assert row[STATUS] == "Paid"

    def test_rows_mirrored_into_type_tab(self, handler, spreadsheet, wedding):
        handler.sync("create", wedding.id)

        assert spreadsheet.data_rows("Wedding") == spreadsheet.data_rows(structure.MASTER_EVENTS)
        assert spreadsheet.rows("Wedding")[0] == structure.MASTER_EVENTS_HEADERS

    def test_resync_is_idempotent(self, handler, spreadsheet, wedding):
        handler.sync("create", wedding.id)
        handler.sync("update", wedding.id)

        assert len(spreadsheet.data_rows(structure.MASTER_EVENTS)) == 3
        assert len(spreadsheet.data_rows("Wedding")) == 3

    def test_shrinking_to_one_day_removes_day_rows(self, handler, spreadsheet, wedding, db_session):
        handler.sync("create", wedding.id)

        wedding.total_days = 1
        db_session.commit()
        handler.sync("update", wedding.id)

        event_id = str(wedding.id)
        assert spreadsheet.keys(structure.MASTER_EVENTS) == [event_id]
        assert spreadsheet.keys("Wedding") == [event_id]
        assert spreadsheet.data_rows(structure.MASTER_EVENTS)[0][TITLE] == "Sharma Wedding"

    def test_type_change_moves_rows(self, handler, spreadsheet, wedding, db_session):
        handler.sync("create", wedding.id)

        wedding.event_type = "Pre-Wedding"
        db_session.commit()
        handler.sync("update", wedding.id)

        assert spreadsheet.keys("Wedding") == []
        assert len(spreadsheet.keys("Pre-Wedding")) == 3
        assert spreadsheet.data_rows(structure.MASTER_EVENTS)[0][TYPE] == "Pre-Wedding"

    def test_unknown_type_filed_under_others(self, handler, spreadsheet, wedding, db_session):
        wedding.event_type = "Corporate"
        db_session.commit()

        handler.sync("create", wedding.id)

        assert len(spreadsheet.keys("Others")) == 3
        assert spreadsheet.data_rows("Others")[0][TYPE] == "Corporate"

    def test_type_tab_failure_keeps_master_rows(self, handler, spreadsheet, wedding):
        spreadsheet.add_tab("Wedding")
        spreadsheet.fail_update_titles["Wedding"] = 500

        summary = handler.sync("create", wedding.id)

        assert len(spreadsheet.keys(structure.MASTER_EVENTS)) == 3
        assert spreadsheet.keys("Wedding") == []
        assert summary.message == 'Event "Sharma Wedding" created successfully'

    def test_master_events_failure_raises(self, handler, spreadsheet, wedding):
        spreadsheet.add_tab(structure.MASTER_EVENTS, [structure.MASTER_EVENTS_HEADERS])
        spreadsheet.fail_update_titles[structure.MASTER_EVENTS] = 500

        with pytest.raises(SheetsAPIError):
            handler.sync("create", wedding.id)

    def test_untitled_event_uses_client_name(self, handler, spreadsheet, wedding, db_session):
        wedding.title = None
        wedding.total_days = 1
        db_session.commit()

        summary = handler.sync("create", wedding.id)

        assert spreadsheet.data_rows(structure.MASTER_EVENTS)[0][TITLE] == "Priya Sharma"
        assert summary.label == 'Event "Priya Sharma"'

    def test_delete_removes_every_day_row(self, handler, spreadsheet, wedding):
        handler.sync("create", wedding.id)
        spreadsheet.sheet(structure.MASTER_EVENTS).grid.append(["other-event", "Keep me"])

        summary = handler.sync("delete", wedding.id)

        assert spreadsheet.keys(structure.MASTER_EVENTS) == ["other-event"]
        assert spreadsheet.keys("Wedding") == []
        assert summary.label == 'Event "Deleted Event"'
        assert summary.message == 'Event "Deleted Event" deleted successfully'

    def test_delete_twice_is_noop(self, handler, spreadsheet, wedding):
        handler.sync("create", wedding.id)
        handler.sync("delete", wedding.id)

        handler.sync("delete", wedding.id)

        assert spreadsheet.keys(structure.MASTER_EVENTS) == []
