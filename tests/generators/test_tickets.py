import re
from datetime import datetime, timedelta, timezone

import pytest

from generators.models import EventKind, PeriodAccumulator
from generators.tickets import Ticket, TicketDesk, TicketState, TicketStateError
from generators.users import UserEventGenerator
from observability.alerts import AlertType

TICKET_ID = re.compile(r"^TKT-[A-Z0-9]{8}$")


@pytest.fixture
def populated(context, make_target):
    UserEventGenerator(context).generate_period(
        make_target(signup_count=20, daily_active_range=(0, 0), monthly_active_target=0)
    )
    return context


def ticket_target(make_target, period="2025-02", raised=0, resolved=0):
    return make_target(
        period=period,
        signup_count=0,
        daily_active_range=(0, 0),
        monthly_active_target=0,
        tickets_raised=raised,
        tickets_resolved=resolved,
    )


class TestTicket:
    def test_resolve_once(self, make_user):
        raised_at = datetime(2025, 1, 5, tzinfo=timezone.utc)
        ticket = Ticket("TKT-ABCDEFGH", make_user(raised_at), raised_at)

        ticket.resolve(raised_at + timedelta(days=1))
        assert ticket.state == TicketState.RESOLVED
        assert not ticket.is_open

        with pytest.raises(TicketStateError, match="already resolved"):
            ticket.resolve(raised_at + timedelta(days=2))

    def test_cannot_resolve_before_raise(self, make_user):
        raised_at = datetime(2025, 1, 5, tzinfo=timezone.utc)
        ticket = Ticket("TKT-ABCDEFGH", make_user(raised_at), raised_at)

        with pytest.raises(TicketStateError):
            ticket.resolve(raised_at - timedelta(seconds=1))
        assert ticket.is_open


class TestTicketDesk:
    def test_raises_requested_tickets(self, populated, make_target):
        acc = PeriodAccumulator(period="2025-02")
        events = TicketDesk(populated).generate_period(ticket_target(make_target, raised=5), acc)

        assert len(events) == 5
        assert acc.tickets_raised == 5
        ids = [e.properties["ticketId"] for e in events]
        assert len(set(ids)) == 5
        assert all(TICKET_ID.match(ticket_id) for ticket_id in ids)

    def test_raise_after_owner_signup(self, context, make_target):
        desk = TicketDesk(context)
        UserEventGenerator(context).generate_period(
            make_target(signup_count=10, daily_active_range=(0, 0), monthly_active_target=0)
        )
        events = desk.generate_period(ticket_target(make_target, period="2025-01", raised=20))
        for event in events:
            assert event.timestamp >= context.pool.get(event.user_id).created_at

    def test_resolutions_follow_raises(self, populated, make_target):
        events = TicketDesk(populated).generate_period(
            ticket_target(make_target, raised=4, resolved=4)
        )
        raised = {e.properties["ticketId"]: e.timestamp for e in events if e.kind == EventKind.TICKET_RAISED}
        resolved = [e for e in events if e.kind == EventKind.TICKET_RESOLVED]

        assert len(resolved) == 4
        for event in resolved:
            assert event.timestamp >= raised[event.properties["ticketId"]]

    def test_open_tickets_carry_over(self, populated, make_target):
        desk = TicketDesk(populated)
        desk.generate_period(ticket_target(make_target, period="2025-02", raised=3))
        assert len(desk.open_tickets) == 3

        target = ticket_target(make_target, period="2025-03", resolved=2)
        start, end = target.bounds
        acc = PeriodAccumulator(period="2025-03")
        events = desk.generate_period(target, acc)

        assert len(events) == 2
        assert acc.tickets_resolved == 2
        assert len(desk.open_tickets) == 1
        assert all(start <= e.timestamp <= end for e in events)

    def test_resolution_window_starts_at_raise(self, populated, make_user, make_target):
        desk = TicketDesk(populated)
        raised_at = datetime(2025, 2, 5, 13, 0, tzinfo=timezone.utc)
        desk.tickets["TKT-DAY00005"] = Ticket("TKT-DAY00005", make_user(raised_at), raised_at)

        events = desk.generate_period(ticket_target(make_target, resolved=1))
        assert len(events) == 1
        _, end = ticket_target(make_target).bounds
        assert raised_at <= events[0].timestamp <= end

    def test_resolve_shortfall_warns(self, populated, make_target):
        desk = TicketDesk(populated)
        events = desk.generate_period(ticket_target(make_target, raised=2, resolved=5))

        assert len([e for e in events if e.kind == EventKind.TICKET_RESOLVED]) == 2
        assert populated.alerts.of_type(AlertType.TICKET_SHORTFALL)

    def test_no_users_to_raise(self, context, make_target):
        events = TicketDesk(context).generate_period(ticket_target(make_target, raised=2))
        assert events == []
        assert context.alerts.of_type(AlertType.TICKET_SHORTFALL)

    def test_ticket_events_name_the_raiser(self, populated, make_target):
        events = TicketDesk(populated).generate_period(ticket_target(make_target, raised=1))
        owner = populated.pool.get(events[0].user_id)
        assert events[0].email == owner.email
        assert events[0].properties["username"] == owner.username
