import logging
from datetime import date, timedelta
from typing import Iterable, Iterator, List

from occupancy_calendar.schedule.errors import InvalidDateRange
from occupancy_calendar.schedule.models import (
    Event,
    NormalizationResult,
    Reservation,
    ReservationIssue,
)
from occupancy_calendar.schedule.titles import build_description, build_title

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def stay_days(check_in: date, check_out: date) -> Iterator[date]:
    """Every night of a stay: check_in <= day < check_out."""
    day = check_in
    while day < check_out:
        yield day
        day += ONE_DAY


def event_id(reservation_id: str, day: date) -> str:
    return f"{reservation_id}-{day.isoformat()}"


def validate_reservation(reservation: Reservation) -> None:
    if not reservation.check_in < reservation.check_out:
        raise InvalidDateRange(
            reservation.id, reservation.check_in, reservation.check_out
        )


def build_reservation_events(reservation: Reservation, detailed_titles: bool = False) -> List[Event]:
    """One all-day event per occupied night, in ascending date order."""
    validate_reservation(reservation)

    title = build_title(reservation, detailed=detailed_titles)
    description = build_description(reservation)

    return [
        Event(
            id=event_id(reservation.id, day),
            date=day,
            title=title,
            description=description,
            source_reservation_id=reservation.id,
        )
        for day in stay_days(reservation.check_in, reservation.check_out)
    ]


def generate_full_day_events(
    reservations: Iterable[Reservation],
    skip_statuses: Iterable[str] = ("cancelled",),
    detailed_titles: bool = False,
) -> NormalizationResult:
    """
    Takes reservations in the order the booking system returned them.
    Produces one full-day event per night of every valid stay.

    Overlapping stays are NOT merged: the booking system decides what is a
    valid booking, so a double booking shows up as two events on that day.
    Reservations with a bad date range are skipped and reported in
    result.issues instead of failing the whole batch.
    """

    skipped = {status.lower() for status in skip_statuses}
    result = NormalizationResult()

    for reservation in reservations:
        if reservation.status.lower() in skipped:
            logger.debug("Skipping %s reservation %s", reservation.status, reservation.id)
            continue

        try:
            events = build_reservation_events(reservation, detailed_titles)
        except InvalidDateRange as exc:
            logger.warning("Skipping reservation %s: %s", reservation.id, exc)
            result.issues.append(ReservationIssue(reservation.id, str(exc)))
            continue

        result.events.extend(events)

    logger.info(
        "Generated %s events, %s reservations skipped",
        len(result.events),
        len(result.issues),
    )
    return result
