"""
Encoding and decoding of the GFF3 attributes column.

Values are percent-escaped for the characters that carry meaning in the
column (``= ; , TAB``) and for ``%`` itself. Multi-valued attributes are
joined with commas.
"""
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from hitgff.core.errors import ValidationError

AttributeValue = Union[str, List[str]]

ESCAPES = {
    '%': '%25',
    '=': '%3D',
    ';': '%3B',
    ',': '%2C',
    '\t': '%09',
}

# Leading and trailing keys; everything else sorts alphabetically in between
LEADING_KEYS = ('ID', 'Name')
TRAILING_KEYS = ('Target', 'Gap')

_ESCAPE_PATTERN = re.compile('[%=;,\t]')
_PERCENT_PATTERN = re.compile('%(.{0,2})', re.DOTALL)
_HEX_DIGITS = set('0123456789abcdefABCDEF')


def escape(value: Any) -> str:
    """Percent-escape the reserved characters of a single value."""
    return _ESCAPE_PATTERN.sub(lambda match: ESCAPES[match.group(0)], str(value))


def unescape(value: str) -> str:
    """
    Reverse percent-escapes in a single value.

    Raises:
        ValidationError: If a ``%`` is not followed by two hex digits
    """
    def replace(match):
        code = match.group(1)
        if len(code) != 2 or not set(code) <= _HEX_DIGITS:
            raise ValidationError(f"Malformed escape sequence '%{code}' in attribute value {value!r}")
        return chr(int(code, 16))

    return _PERCENT_PATTERN.sub(replace, value)


def _key_order(key: str):
    if key in LEADING_KEYS:
        return (0, LEADING_KEYS.index(key), '')
    if key in TRAILING_KEYS:
        return (2, TRAILING_KEYS.index(key), '')
    return (1, 0, key)


def sort_keys(keys: Iterable[str]) -> List[str]:
    """Order attribute keys as ID, Name, the rest alphabetically, Target, Gap."""
    return sorted(keys, key=_key_order)


def encode_attributes(attributes: Mapping[str, Any]) -> str:
    """
    Render an attribute map as a GFF3 attributes column.

    Args:
        attributes: Mapping of keys to scalar or list values; None values are skipped

    Returns:
        The encoded column, or '.' when there is nothing to write
    """
    pairs = []
    for key in sort_keys(attributes.keys()):
        value = attributes[key]
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            encoded = ','.join(escape(item) for item in value)
        else:
            encoded = escape(value)
        pairs.append(f"{key}={encoded}")
    return ';'.join(pairs) if pairs else '.'


def decode_attributes(text: str, only: Optional[Iterable[str]] = None,
                      exclude: Optional[Iterable[str]] = None) -> Dict[str, AttributeValue]:
    """
    Parse a GFF3 attributes column.

    Args:
        text: The attributes column
        only: If given, keep just these keys
        exclude: If given, drop these keys

    Returns:
        Dictionary of keys to values; single values are returned as strings,
        comma-separated values as lists

    Raises:
        ValidationError: On a pair without '=' or a malformed escape sequence
    """
    only = set(only) if only is not None else None
    exclude = set(exclude) if exclude is not None else set()

    attributes: Dict[str, AttributeValue] = {}
    text = text.strip()
    if not text or text == '.':
        return attributes

    for pair in text.split(';'):
        if not pair.strip():
            continue
        if '=' not in pair:
            raise ValidationError(f"Attribute {pair!r} has no value")
        key, raw_value = pair.split('=', 1)
        key = unescape(key.strip())

        if only is not None and key not in only:
            continue
        if key in exclude:
            continue

        values = [unescape(item) for item in raw_value.split(',')]
        attributes[key] = values[0] if len(values) == 1 else values

    return attributes
