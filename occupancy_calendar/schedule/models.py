"""Dataclasses for reservations and the all-day events built from them."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional


@dataclass(frozen=True)
class Reservation:
    """One guest stay as reported by the booking system. Check-out is exclusive."""

    id: str
    check_in: date
    check_out: date
    guest_name: str = ""
    status: str = ""
    property_id: Optional[int] = None
    channel_type: str = ""
    guest_email: str = ""
    guest_phone: str = ""
    number_of_adults: int = 0
    number_of_children: int = 0
    number_of_infants: int = 0
    number_of_pets: int = 0
    total_rate: float = 0.0
    total_commission: float = 0.0
    currency: str = "EUR"
    booked_at: str = ""
    remarks: str = ""
    channel_remarks: str = ""

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    @property
    def number_of_guests(self) -> int:
        return self.number_of_adults + self.number_of_children + self.number_of_infants


@dataclass(frozen=True)
class Event:
    """A single occupied calendar day belonging to one reservation."""

    id: str
    date: date
    title: str
    description: str
    source_reservation_id: str

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "title": self.title,
            "description": self.description,
            "source_reservation_id": self.source_reservation_id,
        }


@dataclass(frozen=True)
class ReservationIssue:
    reservation_id: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"reservation_id": self.reservation_id, "reason": self.reason}


@dataclass
class NormalizationResult:
    """Events generated for the valid reservations plus the ones that were skipped."""

    events: List[Event] = field(default_factory=list)
    issues: List[ReservationIssue] = field(default_factory=list)
