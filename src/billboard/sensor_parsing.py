"""
Numeric value parsing for IoT sensor payloads.

Gateways publish readings in several shapes ("+23.5", "23,5", "23.5 C",
{"v": "23.5"}, 23.5). PARSE_STRATEGIES is tried in order and the first
strategy returning a number wins. The order is part of the contract:
moving a strategy changes which number a payload yields.

Every strategy is total: it returns None instead of raising, and never
returns NaN or infinity.
"""

import math
import re
from typing import Any, Callable, Optional, Sequence, Tuple

from src.common.logger import setup_logger

logger = setup_logger(__name__)

_NUMERIC_TOKEN_RE = re.compile(r"[-+]?\d*\.?\d+")

# Keys checked when a payload object has more than one field
VALUE_KEYS = ('value', 'current_value', 'data')


def _finite(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


def _to_float(text: str) -> Optional[float]:
    try:
        return _finite(float(text))
    except (TypeError, ValueError):
        return None


def strip_plus_prefix(text: str) -> Optional[float]:
    """"+23.5" -> 23.5. Only applies to strings starting with '+'."""
    if not text.startswith('+'):
        return None
    return _to_float(text[1:].strip())


def direct_float(text: str) -> Optional[float]:
    """Whole string is a float literal ("23.5", " -4 ")."""
    return _to_float(text.strip())


def comma_decimal(text: str) -> Optional[float]:
    """European decimal separator ("23,5")."""
    if ',' not in text:
        return None
    return _to_float(text.strip().replace(',', '.', 1))


def first_numeric_token(text: str) -> Optional[float]:
    """First number embedded in the text ("temp: 23.5C")."""
    match = _NUMERIC_TOKEN_RE.search(text)
    if not match:
        return None
    return _to_float(match.group(0))


ParseStrategy = Callable[[str], Optional[float]]

PARSE_STRATEGIES: Tuple[ParseStrategy, ...] = (
    strip_plus_prefix,
    direct_float,
    comma_decimal,
    first_numeric_token,
)


def parse_sensor_value(
    text: str,
    strategies: Sequence[ParseStrategy] = PARSE_STRATEGIES
) -> Optional[float]:
    """
    Parse a textual reading.

    Args:
        text: Raw value string
        strategies: Ordered strategies (defaults to PARSE_STRATEGIES)

    Returns:
        The first strategy's result that is not None, or None
    """
    if not isinstance(text, str):
        return None

    for strategy in strategies:
        value = strategy(text)
        if value is not None:
            logger.debug("Parsed sensor value %r as %s (%s)", text, value, strategy.__name__)
            return value

    logger.warning("Could not parse sensor value: %r", text)
    return None


def _coerce(value: Any) -> Optional[float]:
    """Number or numeric string to float. Booleans are not readings."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _finite(float(value))
    if isinstance(value, str):
        return parse_sensor_value(value)
    return None


def extract_sensor_value(payload: Any) -> Optional[float]:
    """
    Pull a reading out of a decoded MQTT payload.

    Accepts a number, a string, or an object. For objects, a single-key
    object's value is tried first, then the VALUE_KEYS in order.

    Returns:
        The reading, or None if the payload carries no usable number
    """
    if isinstance(payload, dict):
        if len(payload) == 1:
            value = _coerce(next(iter(payload.values())))
            if value is not None:
                return value

        for key in VALUE_KEYS:
            if payload.get(key) is not None:
                value = _coerce(payload[key])
                if value is not None:
                    return value
        return None

    return _coerce(payload)
