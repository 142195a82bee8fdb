# sensors/decoder.py
"""
Temperature Measurement (0x2A1C) notification decoder

Payload (exactly 5 bytes):
  [0]    flags, bit 0: 0 = Celsius, 1 = Fahrenheit (other bits ignored)
  [1..5] little-endian uint32

Modes:
  millidegree  low 24 bits as an unsigned millidegree count (default;
               this is what the sensor firmware actually sends)
  ieee11073    low 32 bits as an IEEE-11073 FLOAT
               (int8 exponent, int24 mantissa, value = m * 10**e)

All arithmetic is done in float32 so results match the device side
bit-for-bit. Anything that is not a valid frame returns None.
"""
import logging
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

PAYLOAD_LEN = 5
FLAG_FAHRENHEIT = 0x01
MANTISSA_MASK = 0x00FFFFFF

MODE_MILLIDEGREE = "millidegree"
MODE_IEEE11073 = "ieee11073"
MODES = (MODE_MILLIDEGREE, MODE_IEEE11073)

# IEEE-11073 FLOAT reserved values (exponent 0)
_FLOAT_SPECIALS = {
    0x007FFFFF: "NaN",
    0x00800000: "NRes",
    0x007FFFFE: "+INF",
    0x00800002: "-INF",
    0x00800001: "reserved",
}

_F32_1000 = np.float32(1000.0)
_F32_32 = np.float32(32.0)
_F32_1_8 = np.float32(1.8)


def check_mode(mode: str) -> str:
    if mode not in MODES:
        raise ValueError(f"unknown decoder mode {mode!r}, expected one of {MODES}")
    return mode


def fahrenheit_to_celsius(value: np.float32) -> np.float32:
    return (np.float32(value) - _F32_32) / _F32_1_8


def _millidegree(raw: int) -> np.float32:
    value = raw & MANTISSA_MASK
    logger.debug("temp: %d", value)
    return np.float32(value) / _F32_1000


def _ieee11073(raw: int) -> Optional[np.float32]:
    # reserved codes only exist with exponent 0
    if raw in _FLOAT_SPECIALS:
        logger.debug("temp: special value %s", _FLOAT_SPECIALS[raw])
        return None
    mantissa = raw & MANTISSA_MASK
    if mantissa & 0x00800000:
        mantissa -= 0x01000000
    exponent = (raw >> 24) & 0xFF
    if exponent & 0x80:
        exponent -= 0x100
    logger.debug("temp: mantissa=%d exponent=%d", mantissa, exponent)
    return np.float32(mantissa * 10.0 ** exponent)


def decode(payload, mode: str = MODE_MILLIDEGREE) -> Optional[np.float32]:
    """Decode one notification into degrees Celsius, or None to drop it."""
    if payload is None or len(payload) != PAYLOAD_LEN:
        return None
    buf = bytes(payload)
    raw = int.from_bytes(buf[1:5], "little")

    if mode == MODE_IEEE11073:
        value = _ieee11073(raw)
        if value is None:
            return None
    else:
        value = _millidegree(raw)

    if buf[0] & FLAG_FAHRENHEIT:
        value = fahrenheit_to_celsius(value)
    return np.float32(value)
