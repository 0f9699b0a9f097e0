import math

from occupancy_calendar.schedule.models import Reservation

DEFAULT_TITLE = "Occupied"

GUEST_EMOJIS = (
    ("number_of_adults", "👤"),
    ("number_of_children", "👶"),
    ("number_of_infants", "🍼"),
    ("number_of_pets", "🐾"),
)


def _round(amount: float) -> int:
    # half-up, so 12.5 -> 13 like the booking site shows it
    return math.floor(amount + 0.5)


def currency_symbol(currency: str) -> str:
    if not currency or currency == "EUR":
        return "€"
    return currency


def guest_emojis(reservation: Reservation) -> str:
    """
    One emoji per person (and pet) on the booking.
    Example: 2 adults + 1 child -> "👤👤👶"
    """
    return "".join(
        emoji * max(getattr(reservation, attr), 0)
        for attr, emoji in GUEST_EMOJIS
    )


def build_title(reservation: Reservation, detailed: bool = False) -> str:
    """
    Summary line for every day of a stay.

    The plain title is the guest name. The detailed one is the booking
    headline: "Jane Doe #3 450€ (380€) 👤👤"
    """
    name = reservation.guest_name.strip() or DEFAULT_TITLE
    if not detailed:
        return name

    symbol = currency_symbol(reservation.currency)
    rate = reservation.total_rate
    net = rate - reservation.total_commission
    headline = (
        f"{name} #{reservation.nights} "
        f"{_round(rate)}{symbol} ({_round(net)}{symbol})"
    )
    emojis = guest_emojis(reservation)
    return f"{headline} {emojis}" if emojis else headline


def build_description(reservation: Reservation) -> str:
    nights = reservation.nights
    symbol = currency_symbol(reservation.currency)
    rate = reservation.total_rate
    commission = reservation.total_commission

    lines = [
        "BOOKING DETAILS",
        "",
        f"Guest: {reservation.guest_name or 'N/A'}",
        f"Email: {reservation.guest_email or 'N/A'}",
        f"Phone: {reservation.guest_phone or 'N/A'}",
        "",
        f"Number of Guests: {reservation.number_of_guests}",
        f"  - Adults: {reservation.number_of_adults}",
        f"  - Children: {reservation.number_of_children}",
        f"  - Infants: {reservation.number_of_infants}",
        f"  - Pets: {reservation.number_of_pets}",
        "",
        f"Stay Duration: {nights} night{'s' if nights != 1 else ''}",
        f"Check-in: {reservation.check_in.isoformat()}",
        f"Check-out: {reservation.check_out.isoformat()}",
        "",
        "FINANCIAL DETAILS",
        "",
        f"Total Rate: {_round(rate)} {symbol}",
        f"Commission: {_round(commission)} {symbol}",
        f"Net Rate: {_round(rate - commission)} {symbol}",
        "",
        "BOOKING INFORMATION",
        "",
        f"Channel: {reservation.channel_type or 'N/A'}",
        f"Reservation Code: {reservation.id}",
        f"Status: {reservation.status or 'N/A'}",
        f"Booked At: {reservation.booked_at or 'N/A'}",
    ]

    if reservation.remarks:
        lines += ["", "REMARKS", "", reservation.remarks]

    if reservation.channel_remarks:
        lines += ["", "CHANNEL REMARKS", "", reservation.channel_remarks]

    return "\n".join(lines)
