import copy
import logging
import os

import yaml

DEFAULT_CONFIG = {
    "log_level": "INFO",
    "output_dir": "output",
    "calendar": {
        "prodid": "-//Occupancy Calendar//EN",
        "detailed_titles": False,
        "skip_statuses": ["cancelled"],
    },
    "gcs": {
        "bucket": None,
    },
    "properties": [],
}


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: str = "config.yaml") -> dict:
    """
    Loads YAML configuration file and returns a dictionary.
    Keys missing from the file fall back to DEFAULT_CONFIG.
    """

    # Relative paths are resolved against the package directory,
    # so the bundled config.yaml is found from any working directory
    if not os.path.isabs(path) and not os.path.exists(path):
        base_dir = os.path.dirname(os.path.abspath(__file__))
        path = os.path.abspath(os.path.join(base_dir, "..", path))

    with open(path, "r", encoding="utf-8") as f:
        return _merge(DEFAULT_CONFIG, yaml.safe_load(f) or {})


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
