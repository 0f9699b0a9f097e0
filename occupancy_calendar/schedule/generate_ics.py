import json
import logging
import os
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from google.cloud import storage
from icalendar import Calendar, Event as VEvent, vText

from occupancy_calendar.schedule.errors import SerializationError
from occupancy_calendar.schedule.models import Event

logger = logging.getLogger(__name__)

DEFAULT_PRODID = "-//Occupancy Calendar//EN"

ICS_CONTENT_TYPE = "text/calendar; charset=utf-8"
JSON_CONTENT_TYPE = "application/json"


class GuestText(vText):
    """
    TEXT value written exactly as given.

    vText turns a literal backslash + "N" into a line break before escaping,
    which corrupts names and remarks such as "C:\\New Guest".
    """

    def to_ical(self) -> bytes:
        # NOTE: ORDER MATTERS! backslash first
        escaped = (
            str(self)
            .replace("\\", "\\\\")
            .replace(";", "\\;")
            .replace(",", "\\,")
            .replace("\r\n", "\\n")
            .replace("\n", "\\n")
            .replace("\r", "\\n")
        )
        return escaped.encode("utf-8")


def _check_event(index: int, event: Event) -> None:
    """
    Raises SerializationError for anything that cannot become a VEVENT.
    Runs over the whole list before any text is produced.
    """
    if not isinstance(event, Event):
        raise SerializationError(f"event #{index} is not an Event: {event!r}")

    if not isinstance(event.id, str) or not event.id:
        raise SerializationError(f"event #{index} has no id")

    # datetime is a date subclass but would be written as a timed event
    if isinstance(event.date, datetime) or not isinstance(event.date, date):
        raise SerializationError(f"event {event.id} has no calendar date: {event.date!r}")

    if not isinstance(event.title, str):
        raise SerializationError(f"event {event.id} has no title")

    if event.description is not None and not isinstance(event.description, str):
        raise SerializationError(f"event {event.id} has a non-text description")


def _utc_stamp(dtstamp: Optional[datetime]) -> datetime:
    if dtstamp is None:
        return datetime.now(timezone.utc).replace(microsecond=0)
    if dtstamp.tzinfo is None:
        return dtstamp.replace(tzinfo=timezone.utc, microsecond=0)
    return dtstamp.astimezone(timezone.utc).replace(microsecond=0)


def build_calendar(
    events: Sequence[Event],
    prodid: str = DEFAULT_PRODID,
    calendar_name: Optional[str] = None,
    dtstamp: Optional[datetime] = None,
) -> Calendar:
    for index, event in enumerate(events):
        _check_event(index, event)

    stamp = _utc_stamp(dtstamp)

    cal = Calendar()
    cal.add("version", "2.0")
    cal.add("prodid", prodid)

    # This sets the calendar name users see in Google/Apple Calendar
    if calendar_name:
        cal.add("X-WR-CALNAME", calendar_name)

    for event in events:
        try:
            end = event.date + timedelta(days=1)  # all-day, end is exclusive
        except OverflowError as exc:
            raise SerializationError(f"event {event.id} has no following day: {event.date!r}") from exc

        vevent = VEvent()
        vevent.add("uid", event.id)
        vevent.add("dtstamp", stamp)
        vevent.add("dtstart", event.date)
        vevent.add("dtend", end)
        vevent.add("summary", GuestText(event.title))
        if event.description:
            vevent.add("description", GuestText(event.description))

        cal.add_component(vevent)

    return cal


def generate_ics(
    events: Sequence[Event],
    prodid: str = DEFAULT_PRODID,
    calendar_name: Optional[str] = None,
    dtstamp: Optional[datetime] = None,
) -> str:
    """
    Renders events as iCalendar text, one VEVENT per event in input order.

    icalendar takes care of text escaping, folding at 75 octets and CRLF
    line endings. Properties keep insertion order so repeated exports of
    the same events (and the same dtstamp) are byte-identical.
    """
    events = list(events)
    cal = build_calendar(events, prodid=prodid, calendar_name=calendar_name, dtstamp=dtstamp)

    try:
        return cal.to_ical(sorted=False).decode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Failed to generate ICS: {exc}") from exc


def events_to_dicts(events: Iterable[Event]) -> List[dict]:
    return [event.to_dict() for event in events]


def generate_json(events: Iterable[Event]) -> str:
    """Same events as generate_ics, as a JSON array for API consumers."""
    return json.dumps(events_to_dicts(events), indent=2, ensure_ascii=False)


def save_calendar(events: Sequence[Event], path, **ics_options) -> Path:
    """
    Writes the ICS export to a local file.
    Nothing is written if serialization fails.
    """
    content = generate_ics(events, **ics_options)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.write(content.encode("utf-8"))

    logger.info("Wrote %s events to %s", len(events), path)
    return path


def save_events_json(events: Sequence[Event], path) -> Path:
    content = generate_json(events)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)

    logger.info("Wrote %s events to %s", len(events), path)
    return path


def upload_to_gcs(local_path, bucket_name, object_name, content_type=ICS_CONTENT_TYPE):
    """
    Publishes a generated file so calendar clients can subscribe to it.
    Returns the public URL.
    """
    client = storage.Client()
    bucket = client.bucket(bucket_name)
    blob = bucket.blob(object_name)
    blob.content_disposition = f'attachment; filename="{os.path.basename(object_name)}"'
    blob.upload_from_filename(str(local_path), content_type=content_type)
    return f"https://storage.googleapis.com/{bucket_name}/{object_name}"
