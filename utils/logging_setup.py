# utils/logging_setup.py
import logging
import os
import sys

LOG_ENV = "BLE_TEMP_LOG"


def resolve_level(value, default=logging.INFO) -> int:
    """Turn "debug" / "INFO" / "10" into a logging level; None -> default."""
    if value is None or str(value).strip() == "":
        return default
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    level = logging.getLevelName(text.upper())
    if isinstance(level, int):
        return level
    raise ValueError(f"unknown log level: {value!r}")


def setup_logging(level=None):
    fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    bad_value = None
    if level is None:
        raw = os.environ.get(LOG_ENV)
        try:
            level = resolve_level(raw)
        except ValueError:
            bad_value = raw
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format=fmt,
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    if bad_value is not None:
        logging.getLogger(__name__).warning(
            "%s=%r is not a log level, using INFO", LOG_ENV, bad_value)
    return level
