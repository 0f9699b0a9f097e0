from __future__ import annotations

import json
from datetime import date, datetime, timezone

import pytest
from icalendar import Calendar

from occupancy_calendar.schedule import generate_ics as ics
from occupancy_calendar.schedule.errors import SerializationError
from occupancy_calendar.schedule.generate_events import generate_full_day_events
from occupancy_calendar.schedule.models import Event, Reservation

STAMP = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _event(day: date, title: str = "Guest", description: str = "", code: str = "r1") -> Event:
    return Event(
        id=f"{code}-{day.isoformat()}",
        date=day,
        title=title,
        description=description,
        source_reservation_id=code,
    )


def _lines(text: str) -> list[str]:
    assert text.endswith("\r\n")
    return text[:-2].split("\r\n")


def _unfold(text: str) -> str:
    return text.replace("\r\n ", "")


def test_empty_event_list_is_a_minimal_calendar():
    text = ics.generate_ics([], dtstamp=STAMP)

    lines = _lines(text)
    assert lines[0] == "BEGIN:VCALENDAR"
    assert lines[-1] == "END:VCALENDAR"
    assert "VERSION:2.0" in lines
    assert f"PRODID:{ics.DEFAULT_PRODID}" in lines
    assert "BEGIN:VEVENT" not in text


def test_vevent_has_uid_stamp_and_all_day_dates():
    text = ics.generate_ics([_event(date(2024, 6, 30))], dtstamp=STAMP)

    lines = _lines(text)
    assert "BEGIN:VEVENT" in lines
    assert "UID:r1-2024-06-30" in lines
    assert "DTSTAMP:20240101T120000Z" in lines
    assert "DTSTART;VALUE=DATE:20240630" in lines
    assert "DTEND;VALUE=DATE:20240701" in lines
    assert "SUMMARY:Guest" in lines
    assert "END:VEVENT" in lines


def test_summary_special_characters_are_escaped():
    text = ics.generate_ics([_event(date(2024, 6, 1), title="Smith, John; VIP")], dtstamp=STAMP)

    assert "SUMMARY:Smith\\, John\\; VIP\r\n" in text


def test_description_newlines_become_escaped_newlines():
    text = ics.generate_ics(
        [_event(date(2024, 6, 1), description="BOOKING DETAILS\n\nGuest: A\\B")],
        dtstamp=STAMP,
    )

    assert "DESCRIPTION:BOOKING DETAILS\\n\\nGuest: A\\\\B\r\n" in _unfold(text)


@pytest.mark.parametrize(
    "title",
    [
        "Smith, John; VIP",
        "back\\slash",
        "two\nlines",
        "all of them: a,b;c\\d\ne",
        "Jane Doe #3 450€ (380€) 👤👤👶🐾",
        "Smith\\NYC",
        "C:\\New Guest",
    ],
)
def test_summary_survives_a_calendar_reader(title):
    text = ics.generate_ics([_event(date(2024, 6, 1), title=title)], dtstamp=STAMP)

    vevent = Calendar.from_ical(text).walk("VEVENT")[0]
    assert str(vevent.get("SUMMARY")) == title


def test_backslash_capital_n_is_not_a_line_break():
    text = ics.generate_ics(
        [_event(date(2024, 6, 1), title="Smith\\NYC", description="REMARKS\n\nC:\\New Guest")],
        dtstamp=STAMP,
    )

    unfolded = _unfold(text)
    assert "SUMMARY:Smith\\\\NYC\r\n" in unfolded
    assert "DESCRIPTION:REMARKS\\n\\nC:\\\\New Guest\r\n" in unfolded

    vevent = Calendar.from_ical(text).walk("VEVENT")[0]
    assert str(vevent.get("DESCRIPTION")) == "REMARKS\n\nC:\\New Guest"


def test_no_line_is_longer_than_75_octets():
    reservation = Reservation(
        id="HX-" + "9" * 90,
        check_in=date(2024, 6, 1),
        check_out=date(2024, 6, 3),
        guest_name="Ünïcødé Gœst " * 12,
        number_of_adults=40,
        number_of_pets=3,
        remarks="x" * 300,
    )
    events = generate_full_day_events([reservation], detailed_titles=True).events

    text = ics.generate_ics(events, calendar_name="Lodge – " + "Ä" * 80, dtstamp=STAMP)

    for line in _lines(text):
        assert len(line.encode("utf-8")) <= 75
    continuation = [line for line in _lines(text) if line.startswith(" ")]
    assert continuation


def test_every_line_ends_with_crlf():
    text = ics.generate_ics([_event(date(2024, 6, 1), description="a\nb")], dtstamp=STAMP)

    assert "\n" not in text.replace("\r\n", "")
    assert "\r" not in text.replace("\r\n", "")


def test_vevents_keep_input_order_and_cover_the_same_days():
    reservations = [
        Reservation(id="b", check_in=date(2024, 8, 10), check_out=date(2024, 8, 12)),
        Reservation(id="a", check_in=date(2024, 8, 1), check_out=date(2024, 8, 3)),
    ]
    events = generate_full_day_events(reservations).events

    text = ics.generate_ics(events, dtstamp=STAMP)
    vevents = Calendar.from_ical(text).walk("VEVENT")

    assert [str(vevent.get("UID")) for vevent in vevents] == [event.id for event in events]
    assert [vevent.get("DTSTART").dt for vevent in vevents] == [event.date for event in events]
    for vevent in vevents:
        assert (vevent.get("DTEND").dt - vevent.get("DTSTART").dt).days == 1


def test_same_events_give_identical_bytes():
    events = [_event(date(2024, 6, day), title="Guest, A") for day in (1, 2, 3)]

    assert ics.generate_ics(events, dtstamp=STAMP) == ics.generate_ics(list(events), dtstamp=STAMP)


def test_default_stamp_is_shared_by_all_events():
    events = [_event(date(2024, 6, day)) for day in range(1, 6)]

    stamps = [line for line in _lines(ics.generate_ics(events)) if line.startswith("DTSTAMP:")]

    assert len(stamps) == 5
    assert len(set(stamps)) == 1
    assert stamps[0].endswith("Z")


def test_calendar_name_is_written():
    text = ics.generate_ics([], calendar_name="Lodge – Occupancy", dtstamp=STAMP)

    assert "X-WR-CALNAME:Lodge – Occupancy" in _lines(text)


@pytest.mark.parametrize(
    "bad_event",
    [
        Event(id="", date=date(2024, 6, 1), title="t", description="", source_reservation_id="r"),
        Event(id=None, date=date(2024, 6, 1), title="t", description="", source_reservation_id="r"),
        Event(id="r-x", date=None, title="t", description="", source_reservation_id="r"),
        Event(id="r-x", date="2024-06-01", title="t", description="", source_reservation_id="r"),
        Event(id="r-x", date=datetime(2024, 6, 1, 10), title="t", description="", source_reservation_id="r"),
        Event(id="r-x", date=date(2024, 6, 1), title=None, description="", source_reservation_id="r"),
        Event(id="r-x", date=date(2024, 6, 1), title="t", description=42, source_reservation_id="r"),
        Event(id="r-x", date=date.max, title="t", description="", source_reservation_id="r"),
        {"id": "r-x", "date": "2024-06-01", "title": "t"},
        None,
    ],
)
def test_unrepresentable_event_fails_the_whole_export(bad_event):
    events = [_event(date(2024, 6, 1)), bad_event]

    with pytest.raises(SerializationError):
        ics.generate_ics(events, dtstamp=STAMP)


def test_json_projection_matches_ics_days():
    reservations = [
        Reservation(id="r1", check_in=date(2024, 6, 1), check_out=date(2024, 6, 4), guest_name="Smith, John"),
    ]
    events = generate_full_day_events(reservations).events

    payload = json.loads(ics.generate_json(events))
    vevents = Calendar.from_ical(ics.generate_ics(events, dtstamp=STAMP)).walk("VEVENT")

    assert [item["date"] for item in payload] == ["2024-06-01", "2024-06-02", "2024-06-03"]
    assert [item["date"] for item in payload] == [vevent.get("DTSTART").dt.isoformat() for vevent in vevents]
    assert payload[0] == {
        "id": "r1-2024-06-01",
        "date": "2024-06-01",
        "title": "Smith, John",
        "description": events[0].description,
        "source_reservation_id": "r1",
    }


def test_save_calendar_writes_nothing_when_serialization_fails(tmp_path):
    target = tmp_path / "out" / "lodge.ics"

    with pytest.raises(SerializationError):
        ics.save_calendar([_event(date(2024, 6, 1), title=None)], target)

    assert not target.exists()


def test_save_calendar_and_json(tmp_path):
    events = [_event(date(2024, 6, 1))]

    ics_path = ics.save_calendar(events, tmp_path / "out" / "lodge.ics", dtstamp=STAMP)
    json_path = ics.save_events_json(events, tmp_path / "out" / "lodge.json")

    assert ics_path.read_bytes() == ics.generate_ics(events, dtstamp=STAMP).encode("utf-8")
    assert json.loads(json_path.read_text(encoding="utf-8"))[0]["id"] == "r1-2024-06-01"


class _FakeBlob:
    def __init__(self, name: str) -> None:
        self.name = name
        self.content_disposition = None
        self.uploads: list[tuple[str, str]] = []

    def upload_from_filename(self, filename: str, content_type: str | None = None) -> None:
        self.uploads.append((filename, content_type))


class _FakeBucket:
    def __init__(self) -> None:
        self.blobs: dict[str, _FakeBlob] = {}

    def blob(self, name: str) -> _FakeBlob:
        return self.blobs.setdefault(name, _FakeBlob(name))


class _FakeClient:
    buckets: dict[str, _FakeBucket] = {}

    def bucket(self, name: str) -> _FakeBucket:
        return self.buckets.setdefault(name, _FakeBucket())


def test_upload_to_gcs_sets_calendar_headers(monkeypatch, tmp_path):
    _FakeClient.buckets = {}
    monkeypatch.setattr(ics.storage, "Client", _FakeClient)
    local = tmp_path / "Lodge.ics"
    local.write_text("BEGIN:VCALENDAR\r\nEND:VCALENDAR\r\n")

    url = ics.upload_to_gcs(local, "calendar-bucket", "Lodge.ics")

    blob = _FakeClient.buckets["calendar-bucket"].blobs["Lodge.ics"]
    assert url == "https://storage.googleapis.com/calendar-bucket/Lodge.ics"
    assert blob.uploads == [(str(local), "text/calendar; charset=utf-8")]
    assert blob.content_disposition == 'attachment; filename="Lodge.ics"'
