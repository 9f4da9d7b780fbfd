r"""
Investment statement extraction.

Users paste the position table of their investment platform as plain text:
tab separated cells, one record spread over several lines. Two layouts are
recognised.

Portfolio layout (one product with a position)::

    Itaú Dunamis Fundo de Ações\tR$ 1.315,20
    4,08%\tR$ 22.670,37
    4,94%\tR$ 33.833,54
    6,95%\tR$ 17.102,45
    2,04%\tR$ 48.183,95
    7,63%\tR$ 12.759,37
    39,66%\t1.456.151,66\tresgatar\taplicar

No-value layout (products without history, e.g. CDBs)::

    CDB-DI\t
    -
    Nenhum valor\t
    ... (five "-" / "Nenhum valor" pairs)
    Nenhum valor\t15.420,09\tresgatar\taplicar

The value kept is the last one on the record, the current position. Anything
else in the text is ignored: extraction is best effort and an unknown layout
simply yields no items.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional

from .models import InvestmentItem
from .parsing import parse_locale_number

logger = logging.getLogger(__name__)

MAX_INVESTMENT_ITEMS = 10

# Trailing action labels of every record ("redeem", "apply")
ACTION_LABELS = r'\tresgatar\taplicar.*$'
NO_VALUE_GROUP = r'\t\n-\nNenhum valor'


@dataclass(frozen=True)
class StatementPattern:
    """A statement layout: regex plus how to read its captures.

    ``mapper`` receives the match and returns ``(name, raw_value)``.
    """
    name: str
    regex: 're.Pattern'
    mapper: Callable[['re.Match'], tuple]


def _name_and_value(match):
    return match.group(1), match.group(2)


STATEMENT_PATTERNS = [
    StatementPattern(
        name='portfolio',
        regex=re.compile(
            r'^([\w ]+)\tR\$ [0-9.,]+' + r'\n.*' * 6 + r'\t([0-9.,]+)' + ACTION_LABELS,
            re.MULTILINE,
        ),
        mapper=_name_and_value,
    ),
    StatementPattern(
        name='no_value',
        regex=re.compile(
            r'^([\w\- ]+)' + f'(?:{NO_VALUE_GROUP}){{5}}' + r'\t([0-9.,]+)' + ACTION_LABELS,
            re.MULTILINE,
        ),
        mapper=_name_and_value,
    ),
]


def normalize_statement_text(raw_text):
    """Use plain newlines regardless of where the text was copied from."""
    return raw_text.replace('\r\n', '\n').replace('\r', '\n')


def extract_investment_items(raw_text: str, locale: Optional[str] = None,
                             patterns=None) -> List[InvestmentItem]:
    """
    Extract investment positions from pasted statement text.

    Args:
        raw_text (str): Text copied from the investment platform
        locale (str, optional): Locale used to read the values
        patterns (list, optional): Layouts to scan, defaults to STATEMENT_PATTERNS

    Returns:
        list: InvestmentItem per recognised record, at most MAX_INVESTMENT_ITEMS

    Notes:
        - Records whose value does not parse, or parses to zero, are dropped
        - Each layout is scanned over the whole text, in order
    """
    if not raw_text:
        return []
    if patterns is None:
        patterns = STATEMENT_PATTERNS

    text = normalize_statement_text(raw_text)
    investments = []

    for pattern in patterns:
        for match in pattern.regex.finditer(text):
            if len(investments) >= MAX_INVESTMENT_ITEMS:
                logger.warning(f"Stopped after {MAX_INVESTMENT_ITEMS} investments, ignoring the rest")
                return investments

            name, raw_value = pattern.mapper(match)
            name = name.strip()
            value = parse_locale_number(raw_value.strip(), locale)
            if not value:
                logger.debug(f"Skipping {pattern.name} record {name!r}: no value in {raw_value!r}")
                continue

            investments.append(InvestmentItem(name=name, value=value))

    logger.info(f"Extracted {len(investments)} investments from statement text")
    return investments
