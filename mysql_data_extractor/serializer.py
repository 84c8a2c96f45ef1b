"""
SQL literal formatting for extracted rows.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Sequence


def escape_string(value: str) -> str:
    """Escape backslash, quote, newline, carriage return and tab."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    escaped = escaped.replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t")
    return escaped


def format_float(value: float) -> str:
    """Fixed-point rendering, never scientific notation."""
    return format(Decimal(repr(value)), 'f')


class RowSerializer:
    """Formats fetched values as SQL literals for batched INSERT statements.

    Dispatch is on the runtime type of the value, not the declared column
    type: the driver may hand back the same column type as str or bytes
    depending on charset and collation.
    """

    DATETIME_FORMAT = '%Y-%m-%d %H:%M:%S'

    def __init__(self):
        # Exact-type lookup keeps bool from being treated as int
        self._type_formatters: dict[type, Callable[[Any], str]] = {
            type(None): lambda v: 'NULL',
            bool: lambda v: '1' if v else '0',
            int: str,
            float: format_float,
            str: self._format_text,
            bytes: self._format_bytes,
            bytearray: self._format_bytes,
            datetime: self._format_datetime,
            date: self._format_datetime,
            timedelta: self._format_time,
            set: self._format_set,
            frozenset: self._format_set,
        }

    def format_value(self, value: Any) -> str:
        """Format a single column value."""
        formatter = self._type_formatters.get(type(value))
        if formatter:
            return formatter(value)

        # Subclasses of the known types (e.g. pendulum datetimes, IntEnum)
        for known_type, formatter in self._type_formatters.items():
            if known_type is not type(None) and isinstance(value, known_type):
                return formatter(value)

        # Decimal and anything else
        return self._format_text(str(value))

    def format_row(self, row: Sequence[Any]) -> str:
        """Format a row as a parenthesised tuple of literals."""
        return f"({','.join(self.format_value(v) for v in row)})"

    def _format_text(self, value: str) -> str:
        return f"'{escape_string(value)}'"

    def _format_bytes(self, value: bytes) -> str:
        try:
            text = bytes(value).decode('utf-8')
        except UnicodeDecodeError:
            # Binary payloads cannot be written to a text script as-is
            return f"X'{bytes(value).hex()}'"
        return self._format_text(text)

    def _format_datetime(self, value: date) -> str:
        return f"'{value.strftime(self.DATETIME_FORMAT)}'"

    def _format_time(self, value: timedelta) -> str:
        """TIME columns: signed total hours, e.g. '-25:00:00' or '12:00:00.500000'."""
        sign = '-' if value < timedelta(0) else ''
        micros = abs(value) // timedelta(microseconds=1)
        seconds, micros = divmod(micros, 1_000_000)
        minutes, seconds = divmod(seconds, 60)
        hours, minutes = divmod(minutes, 60)
        text = f"{sign}{hours}:{minutes:02d}:{seconds:02d}"
        if micros:
            text += f".{micros:06d}"
        return f"'{text}'"

    def _format_set(self, value: frozenset) -> str:
        """SET columns: comma-joined members."""
        return self._format_text(','.join(sorted(str(v) for v in value)))
