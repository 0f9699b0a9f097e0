from datetime import date
from typing import List, Tuple

from occupancy_calendar.schedule.models import Reservation, ReservationIssue


def _amount(rates: dict, key: str) -> Tuple[float, str]:
    money = rates.get(key) or {}
    return float(money.get("amount") or 0), money.get("currency") or ""


def parse_reservation(record: dict) -> Reservation:
    """
    Maps one booking-system record to a Reservation.
    Raises KeyError/ValueError when the code or a stay date is missing or malformed.
    """
    code = record.get("reservation_code")
    if not code:
        raise KeyError("reservation_code")

    check_in = date.fromisoformat(str(record["check_in_date"])[:10])
    check_out = date.fromisoformat(str(record["check_out_date"])[:10])

    rates = record.get("rates") or {}
    total_rate, currency = _amount(rates, "total_rate")
    total_commission, _ = _amount(rates, "total_commission")

    return Reservation(
        id=str(code),
        check_in=check_in,
        check_out=check_out,
        guest_name=record.get("guest_name") or "",
        status=record.get("status") or "",
        property_id=record.get("property_id"),
        channel_type=record.get("channel_type") or "",
        guest_email=record.get("guest_email") or "",
        guest_phone=record.get("guest_phone") or "",
        number_of_adults=int(record.get("number_of_adults") or 0),
        number_of_children=int(record.get("number_of_children") or 0),
        number_of_infants=int(record.get("number_of_infants") or 0),
        number_of_pets=int(record.get("number_of_pets") or 0),
        total_rate=total_rate,
        total_commission=total_commission,
        currency=currency or "EUR",
        booked_at=record.get("booked_at") or "",
        remarks=record.get("remarks") or "",
        channel_remarks=record.get("channel_remarks") or "",
    )


def parse_reservations(payload: List[dict]) -> Tuple[List[Reservation], List[ReservationIssue]]:
    """
    Parses raw reservation records, keeping the booking system's order.
    Records that cannot be read are reported and skipped.
    """

    reservations = []
    issues = []

    for index, record in enumerate(payload):
        try:
            reservations.append(parse_reservation(record))
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            reservation_id = f"#{index}"
            if isinstance(record, dict) and record.get("reservation_code"):
                reservation_id = str(record["reservation_code"])
            issues.append(ReservationIssue(reservation_id, f"unreadable record: {exc!r}"))

    return reservations, issues
