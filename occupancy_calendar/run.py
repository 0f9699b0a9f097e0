import argparse
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import requests
from google.api_core.exceptions import GoogleAPIError

from occupancy_calendar.calendars.fetch_reservations import fetch_reservations
from occupancy_calendar.calendars.parse_reservations import parse_reservations
from occupancy_calendar.config.utils import configure_logging, load_config
from occupancy_calendar.schedule.errors import CalendarError
from occupancy_calendar.schedule.generate_events import generate_full_day_events
from occupancy_calendar.schedule.generate_ics import (
    DEFAULT_PRODID,
    JSON_CONTENT_TYPE,
    save_calendar,
    save_events_json,
    upload_to_gcs,
)
from occupancy_calendar.schedule.models import Event, Reservation, ReservationIssue

logger = logging.getLogger(__name__)

ICS_INDEX_PATH = "ics_index.txt"


@dataclass
class ExportResult:
    ics_path: Path
    json_path: Optional[Path]
    events: List[Event] = field(default_factory=list)
    issues: List[ReservationIssue] = field(default_factory=list)


def export_calendar(
    fetch: Callable[[], List[Reservation]],
    ics_path,
    json_path=None,
    prodid: str = DEFAULT_PRODID,
    calendar_name: Optional[str] = None,
    detailed_titles: bool = False,
    skip_statuses: Iterable[str] = ("cancelled",),
    dtstamp: Optional[datetime] = None,
) -> ExportResult:
    """
    fetch -> full-day events -> .ics (and optionally .json) on disk.

    Fetch errors and SerializationError propagate; reservations that
    cannot be turned into events end up in ExportResult.issues.
    """
    reservations = fetch()
    logger.info("Number of reservations: %s", len(reservations))

    result = generate_full_day_events(
        reservations,
        skip_statuses=skip_statuses,
        detailed_titles=detailed_titles,
    )

    ics_path = save_calendar(
        result.events,
        ics_path,
        prodid=prodid,
        calendar_name=calendar_name,
        dtstamp=dtstamp,
    )
    if json_path is not None:
        json_path = save_events_json(result.events, json_path)

    return ExportResult(ics_path, json_path, result.events, result.issues)


def property_fetcher(source: str, issues: List[ReservationIssue]) -> Callable[[], List[Reservation]]:
    """Reservation source for one configured property. Unreadable records go to issues."""

    def fetch():
        reservations, parse_issues = parse_reservations(fetch_reservations(source))
        issues.extend(parse_issues)
        return reservations

    return fetch


def export_property(prop: dict, config: dict) -> ExportResult:
    name = prop["name"]
    calendar = config["calendar"]
    safe_name = name.replace(" ", "")
    output_dir = Path(config["output_dir"])

    parse_issues: List[ReservationIssue] = []
    result = export_calendar(
        property_fetcher(prop["source"], parse_issues),
        ics_path=output_dir / f"{safe_name}.ics",
        json_path=output_dir / f"{safe_name}.json",
        prodid=calendar["prodid"],
        calendar_name=f"{name} – Occupancy",
        detailed_titles=calendar["detailed_titles"],
        skip_statuses=calendar["skip_statuses"],
    )
    result.issues[:0] = parse_issues
    return result


def publish(result: ExportResult, property_name: str, bucket_name: str) -> str:
    """Uploads both exports and lists the subscribable .ics URL in the index file."""
    public_url = upload_to_gcs(result.ics_path, bucket_name, result.ics_path.name)
    if result.json_path is not None:
        upload_to_gcs(result.json_path, bucket_name, result.json_path.name, content_type=JSON_CONTENT_TYPE)

    with open(ICS_INDEX_PATH, "a", encoding="utf-8") as f:
        f.write(f"{property_name} | {public_url}\n")
    return public_url


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export booking occupancy as all-day calendar events")
    parser.add_argument("--config", default="config.yaml", help="Path to the YAML config file")
    parser.add_argument("--log-level", default=None, help="Overrides log_level from the config")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    configure_logging(args.log_level or config["log_level"])

    bucket_name = config["gcs"]["bucket"]
    if bucket_name:
        open(ICS_INDEX_PATH, "w").close()   # clear the file for fresh run

    failures = 0

    for prop in config["properties"]:
        name = prop["name"]

        print(f"\n{'='*60}")
        print(f"Processing property: {name}")
        print(f"{'='*60}")

        try:
            result = export_property(prop, config)
        except (CalendarError, requests.RequestException, OSError, ValueError) as exc:
            logger.error("Export failed for %s: %s", name, exc)
            failures += 1
            continue

        print(f"  → {len(result.events)} occupied days exported.")
        print(f"  → Saved ICS: {result.ics_path}")
        print(f"  → Saved JSON: {result.json_path}")

        for issue in result.issues:
            logger.warning("Reservation %s skipped: %s", issue.reservation_id, issue.reason)

        if bucket_name:
            try:
                public_url = publish(result, name, bucket_name)
            except (GoogleAPIError, OSError) as exc:
                logger.error("Upload failed for %s: %s", name, exc)
                failures += 1
                continue
            print(f"  → Uploaded to: {public_url}")

    print(f"\n{'='*60}")
    print("All properties processed.")
    print(f"{'='*60}\n")

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
