import json
import os
from typing import List

import requests


def _unwrap(payload) -> List[dict]:
    # The booking API wraps the list: {"data": {"reservations": [...]}}
    if isinstance(payload, dict):
        payload = (payload.get("data") or {}).get("reservations", [])
    if not isinstance(payload, list):
        raise ValueError("Reservation payload must be a list of records")
    return payload


def fetch_reservations(source: str, timeout: int = 10) -> List[dict]:
    """
    Fetches raw reservation records.
    - If 'source' is a URL (starts with http), download it.
    - If it's a file path, read it from disk.
    Returns the list of reservation dicts, still in booking-system format.
    """

    # Case 1: URL mode
    if source.startswith("http://") or source.startswith("https://"):
        response = requests.get(source, timeout=timeout)
        response.raise_for_status()
        return _unwrap(response.json())

    # Case 2: Local file mode
    if os.path.exists(source):
        with open(source, "r", encoding="utf-8") as f:
            return _unwrap(json.load(f))

    raise FileNotFoundError(f"Could not fetch reservations from: {source}")
