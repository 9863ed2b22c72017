"""
Support ticket lifecycle.

A ticket moves RAISED -> RESOLVED exactly once. Tickets left open at the
end of a period stay eligible for resolution in every later period.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

import numpy as np
import structlog

from generators.context import GenerationContext
from generators.models import Event, EventKind, PeriodAccumulator, User
from generators.plan import MonthlyTarget
from generators.sampling import random_code, random_instant, sample_without_replacement
from observability.alerts import AlertType

logger = structlog.get_logger("tickets")


class TicketState(str, Enum):
    RAISED = "raised"
    RESOLVED = "resolved"


class TicketStateError(RuntimeError):
    """Illegal lifecycle transition."""


@dataclass
class Ticket:
    ticket_id: str
    user: User
    raised_at: datetime
    state: TicketState = TicketState.RAISED
    resolved_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.state == TicketState.RAISED

    def resolve(self, at: datetime) -> None:
        if self.state == TicketState.RESOLVED:
            raise TicketStateError(f"Ticket {self.ticket_id} is already resolved")
        if at < self.raised_at:
            raise TicketStateError(
                f"Ticket {self.ticket_id} cannot resolve at {at.isoformat()} "
                f"before it was raised at {self.raised_at.isoformat()}"
            )
        self.state = TicketState.RESOLVED
        self.resolved_at = at


class TicketDesk:
    """Raises and resolves tickets period by period for one run."""

    def __init__(self, context: GenerationContext):
        self.ctx = context
        self.rng: np.random.Generator = context.rng
        self.tickets: dict[str, Ticket] = {}

    @property
    def open_tickets(self) -> list[Ticket]:
        return [t for t in self.tickets.values() if t.is_open]

    def generate_period(
        self, target: MonthlyTarget, accumulator: Optional[PeriodAccumulator] = None
    ) -> list[Event]:
        acc = accumulator or PeriodAccumulator(period=target.period)
        events = self.raise_tickets(target, acc)
        events.extend(self.resolve_tickets(target, acc))
        return events

    def raise_tickets(self, target: MonthlyTarget, acc: PeriodAccumulator) -> list[Event]:
        if target.tickets_raised <= 0:
            return []

        start, end = target.bounds
        eligible = self.ctx.pool.eligible(end)
        if not eligible:
            self.ctx.alerts.warn(
                AlertType.TICKET_SHORTFALL,
                "tickets",
                f"No users to raise tickets in {target.period}",
                period=target.period,
                target=target.tickets_raised,
            )
            return []

        events = []
        for _ in range(target.tickets_raised):
            user = eligible[int(self.rng.integers(0, len(eligible)))]
            raised_at = random_instant(self.rng, max(start, user.created_at), end)
            ticket = Ticket(ticket_id=self._new_ticket_id(), user=user, raised_at=raised_at)
            self.tickets[ticket.ticket_id] = ticket
            events.append(self._ticket_event(EventKind.TICKET_RAISED, ticket, raised_at))

        acc.tickets_raised += len(events)
        logger.debug("tickets_raised", period=target.period, count=len(events))
        return events

    def resolve_tickets(self, target: MonthlyTarget, acc: PeriodAccumulator) -> list[Event]:
        if target.tickets_resolved <= 0:
            return []

        start, end = target.bounds
        candidates = [t for t in self.open_tickets if t.raised_at <= end]
        chosen = sample_without_replacement(self.rng, candidates, target.tickets_resolved)

        events = []
        for ticket in chosen:
            resolved_at = random_instant(self.rng, max(ticket.raised_at, start), end)
            ticket.resolve(resolved_at)
            events.append(self._ticket_event(EventKind.TICKET_RESOLVED, ticket, resolved_at))

        if len(chosen) < target.tickets_resolved:
            self.ctx.alerts.warn(
                AlertType.TICKET_SHORTFALL,
                "tickets",
                f"Only {len(chosen)} open tickets to resolve in {target.period}",
                period=target.period,
                target=target.tickets_resolved,
                resolved=len(chosen),
            )

        acc.tickets_resolved += len(events)
        logger.debug("tickets_resolved", period=target.period, count=len(events))
        return events

    def _new_ticket_id(self) -> str:
        while True:
            ticket_id = f"TKT-{random_code(self.rng, 8)}"
            if ticket_id not in self.tickets:
                return ticket_id

    def _ticket_event(self, kind: EventKind, ticket: Ticket, at: datetime) -> Event:
        return self.ctx.new_event(
            kind,
            at,
            ticket.user,
            {"ticketId": ticket.ticket_id, "username": ticket.user.username},
        )
