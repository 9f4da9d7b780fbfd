"""
Locale-aware numeric parsing.

Statement values and user input arrive formatted for a locale ("1.234,56" in
pt_BR, "1,234.56" in en_US). The separators are detected by formatting a
reference value through babel and reading which characters it used.
"""

import logging
import re
import string
from functools import lru_cache
from typing import Optional, Tuple

import numpy as np
from babel.core import UnknownLocaleError
from babel.numbers import format_decimal

from .utils import get_statement_locale

logger = logging.getLogger(__name__)

REFERENCE_VALUE = 12345.67
FALLBACK_DECIMAL_SEPARATOR = '.'
FALLBACK_GROUP_SEPARATOR = ','

# Leading numeric prefix, the way a lenient float parser reads "12.5abc" as 12.5
_NUMERIC_PREFIX = re.compile(r'^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')


def detect_separators(locale: Optional[str] = None) -> Tuple[str, str]:
    """Return the ``(decimal, group)`` separators used by a locale.

    Args:
        locale (str, optional): Locale identifier such as ``pt_BR``. Defaults
            to the configured statement locale.

    Returns:
        tuple: (decimal_separator, group_separator)
    """
    if locale is None:
        locale = get_statement_locale()
    return _locale_separators(locale.replace('-', '_'))


@lru_cache(maxsize=32)
def _locale_separators(locale):
    try:
        formatted = format_decimal(REFERENCE_VALUE, locale=locale)
    except (UnknownLocaleError, ValueError) as e:
        logger.warning(f"Could not detect separators for locale {locale!r}: {e}")
        return FALLBACK_DECIMAL_SEPARATOR, FALLBACK_GROUP_SEPARATOR

    separators = [char for char in formatted if char not in string.digits]
    if not separators:
        logger.warning(f"No separators in reference value {formatted!r} for locale {locale!r}")
        return FALLBACK_DECIMAL_SEPARATOR, FALLBACK_GROUP_SEPARATOR

    decimal = separators[-1]
    if len(separators) > 1 and separators[0] != decimal:
        group = separators[0]
    else:
        # Locale does not group five digit numbers
        group = FALLBACK_GROUP_SEPARATOR if decimal != FALLBACK_GROUP_SEPARATOR else FALLBACK_DECIMAL_SEPARATOR

    logger.debug(f"Locale {locale}: decimal={decimal!r} group={group!r}")
    return decimal, group


def parse_float_prefix(text):
    """Parse the leading number of ``text``.

    Args:
        text (str): Canonical text using ``.`` as decimal separator

    Returns:
        float or None: Parsed number, or None if no finite number leads the text
    """
    if not isinstance(text, str):
        return None

    match = _NUMERIC_PREFIX.match(text)
    if not match:
        return None

    value = float(match.group(0))
    if not np.isfinite(value):
        return None
    return value


def parse_locale_number(text: str, locale: Optional[str] = None) -> Optional[float]:
    """
    Convert a locale-formatted numeric string into a float.

    Args:
        text (str): Value as typed or pasted, e.g. "R$ 1.234,56"
        locale (str, optional): Locale to read separators from. Defaults to
            the configured statement locale.

    Returns:
        float or None: The value, or None when no numeric value is present

    Notes:
        - Currency symbols, letters and spaces are discarded
        - A minus sign counts only when it comes before the first digit
        - Group separators are removed in full before the decimal separator
          is replaced, so "1.234" in pt_BR reads as 1234
    """
    if not text:
        return None

    decimal, group = detect_separators(locale)

    first_digit = next((i for i, char in enumerate(text) if char in string.digits), None)
    if first_digit is None:
        return None
    negative = '-' in text[:first_digit]

    sanitized = ''.join(
        char for char in text
        if char in string.digits or char == group or char == decimal
    )
    normalized = sanitized.replace(group, '').replace(decimal, '.', 1)
    if negative:
        normalized = '-' + normalized

    return parse_float_prefix(normalized)
