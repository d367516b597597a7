"""
Database values and their canonical string forms.

Rows are read through a raw cursor, so every column arrives as the bytes of
the MySQL text protocol. :func:`decode_field` turns those bytes into one of
the ``*Value`` variants below using the column type from the cursor
description, and :class:`ValueConverter` renders a variant as the canonical
string used by every writer. Temporal components are range-checked at
conversion time.
"""

import base64
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional, Union

from mysql.connector.constants import FieldFlag, FieldType

from .errors import TypeConversionError
from .models import BinaryEncoding

BINARY_CHARSET = 63


@dataclass(frozen=True)
class NullValue:
    pass


@dataclass(frozen=True)
class IntValue:
    value: int


@dataclass(frozen=True)
class FloatValue:
    value: float


@dataclass(frozen=True)
class DecimalValue:
    text: str


@dataclass(frozen=True)
class BytesValue:
    data: bytes


@dataclass(frozen=True)
class TextValue:
    text: str


@dataclass(frozen=True)
class DateValue:
    year: int
    month: int
    day: int


@dataclass(frozen=True)
class DateTimeValue:
    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    microsecond: int = 0


@dataclass(frozen=True)
class TimeValue:
    """A signed duration; ``hours`` is the remainder after whole days."""
    negative: bool
    days: int
    hours: int
    minutes: int
    seconds: int
    microseconds: int = 0


@dataclass(frozen=True)
class JsonValue:
    text: str


Value = Union[
    NullValue, IntValue, FloatValue, DecimalValue, BytesValue, TextValue,
    DateValue, DateTimeValue, TimeValue, JsonValue,
]

NULL = NullValue()


# -- range checks -----------------------------------------------------------

def _check_range(component: str, value: int, low: int, high: int, context: str) -> None:
    if not low <= value <= high:
        raise TypeConversionError(f"Invalid {component} value {value} in {context}")


def _check_date(year: int, month: int, day: int, context: str) -> None:
    _check_range("year", year, 0, 9999, context)
    _check_range("month", month, 1, 12, context)
    _check_range("day", day, 1, 31, context)


def _check_clock(hour: int, minute: int, second: int, microsecond: int, context: str) -> None:
    _check_range("hour", hour, 0, 23, context)
    _check_range("minute", minute, 0, 59, context)
    _check_range("second", second, 0, 59, context)
    _check_range("microsecond", microsecond, 0, 999_999, context)


def _fraction(microsecond: int) -> str:
    return f".{microsecond:06d}" if microsecond else ""


# -- canonical strings ------------------------------------------------------

def format_float(value: float) -> str:
    """Shortest round-tripping form; integral values print without '.0'."""
    if math.isfinite(value) and value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


def compact_json(text: str) -> str:
    """Strip insignificant whitespace from JSON text, leaving tokens untouched."""
    out = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
            out.append(ch)
        elif ch not in ' \t\r\n':
            out.append(ch)
    return ''.join(out)


class ValueConverter:
    """Converts Value variants to canonical strings. NULL converts to None."""

    def __init__(self, binary_encoding: BinaryEncoding = BinaryEncoding.HEX):
        self.binary_encoding = binary_encoding

        self._formatters: dict[type, Callable[[Any], Optional[str]]] = {
            NullValue: lambda v: None,
            IntValue: lambda v: str(v.value),
            FloatValue: lambda v: format_float(v.value),
            DecimalValue: lambda v: v.text,
            TextValue: lambda v: v.text,
            BytesValue: self._format_bytes,
            DateValue: self._format_date,
            DateTimeValue: self._format_datetime,
            TimeValue: self._format_time,
            JsonValue: lambda v: compact_json(v.text),
        }

    def to_canonical(self, value: Value) -> Optional[str]:
        """Return the canonical string for ``value``, or None for NULL."""
        formatter = self._formatters.get(type(value))
        if formatter is None:
            raise TypeConversionError(f"Unsupported value type {type(value).__name__}")
        return formatter(value)

    def _format_bytes(self, value: BytesValue) -> str:
        if self.binary_encoding == BinaryEncoding.BASE64:
            return base64.b64encode(value.data).decode('ascii')
        return value.data.hex().upper()

    def _format_date(self, value: DateValue) -> str:
        _check_date(value.year, value.month, value.day, "date")
        return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"

    def _format_datetime(self, value: DateTimeValue) -> str:
        _check_date(value.year, value.month, value.day, "datetime")
        _check_clock(value.hour, value.minute, value.second, value.microsecond, "datetime")
        return (
            f"{value.year:04d}-{value.month:02d}-{value.day:02d} "
            f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
            f"{_fraction(value.microsecond)}"
        )

    def _format_time(self, value: TimeValue) -> str:
        if value.days < 0:
            raise TypeConversionError(f"Invalid days value {value.days} in time")
        _check_clock(value.hours, value.minutes, value.seconds, value.microseconds, "time")
        sign = "-" if value.negative else ""
        total_hours = value.days * 24 + value.hours
        return (
            f"{sign}{total_hours:02d}:{value.minutes:02d}:{value.seconds:02d}"
            f"{_fraction(value.microseconds)}"
        )


# -- decoding the text protocol ---------------------------------------------

INTEGER_TYPES = frozenset({
    FieldType.TINY, FieldType.SHORT, FieldType.LONG, FieldType.LONGLONG,
    FieldType.INT24, FieldType.YEAR,
})
FLOAT_TYPES = frozenset({FieldType.FLOAT, FieldType.DOUBLE})
DECIMAL_TYPES = frozenset({FieldType.DECIMAL, FieldType.NEWDECIMAL})
DATE_TYPES = frozenset({FieldType.DATE, FieldType.NEWDATE})
DATETIME_TYPES = frozenset({FieldType.DATETIME, FieldType.TIMESTAMP})
STRING_TYPES = frozenset({
    FieldType.VARCHAR, FieldType.VAR_STRING, FieldType.STRING,
    FieldType.TINY_BLOB, FieldType.MEDIUM_BLOB, FieldType.LONG_BLOB, FieldType.BLOB,
    FieldType.ENUM, FieldType.SET,
})

DATE_PATTERN = re.compile(r'^(-?\d+)-(\d+)-(\d+)$')
DATETIME_PATTERN = re.compile(r'^(-?\d+)-(\d+)-(\d+)[ T](\d+):(\d+):(\d+)(?:\.(\d{1,6}))?$')
TIME_PATTERN = re.compile(r'^(-)?(\d+):(\d+):(\d+)(?:\.(\d{1,6}))?$')


@dataclass(frozen=True)
class ColumnMeta:
    """Name and type information for one result column."""
    name: str
    type_code: int
    flags: int = 0
    charset: Optional[int] = None

    @classmethod
    def from_description(cls, description: tuple) -> "ColumnMeta":
        """Build from a DB-API ``cursor.description`` entry."""
        name = description[0]
        if isinstance(name, (bytes, bytearray)):
            name = bytes(name).decode('utf-8')
        flags = description[7] if len(description) > 7 and description[7] else 0
        charset = description[8] if len(description) > 8 else None
        return cls(name=name, type_code=description[1], flags=flags, charset=charset)

    @property
    def is_binary(self) -> bool:
        if self.type_code in (FieldType.BIT, FieldType.GEOMETRY):
            return True
        if self.type_code not in STRING_TYPES:
            return False
        if self.charset is not None:
            return self.charset == BINARY_CHARSET
        return bool(self.flags & FieldFlag.BINARY)


def _micros(fraction: Optional[str]) -> int:
    return int(fraction.ljust(6, '0')) if fraction else 0


def _decode_text(raw: bytes, column: ColumnMeta) -> str:
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError as e:
        raise TypeConversionError(
            f"Invalid UTF-8 in column '{column.name}' at byte {e.start}"
        ) from e


def parse_date(text: str) -> DateValue:
    match = DATE_PATTERN.match(text)
    if not match:
        raise TypeConversionError(f"Malformed date value '{text}'")
    year, month, day = (int(part) for part in match.groups())
    return DateValue(year, month, day)


def parse_datetime(text: str) -> DateTimeValue:
    match = DATETIME_PATTERN.match(text)
    if not match:
        raise TypeConversionError(f"Malformed datetime value '{text}'")
    parts = [int(part) for part in match.groups()[:6]]
    return DateTimeValue(*parts, microsecond=_micros(match.group(7)))


def parse_time(text: str) -> TimeValue:
    match = TIME_PATTERN.match(text)
    if not match:
        raise TypeConversionError(f"Malformed time value '{text}'")
    total_hours = int(match.group(2))
    return TimeValue(
        negative=match.group(1) == '-',
        days=total_hours // 24,
        hours=total_hours % 24,
        minutes=int(match.group(3)),
        seconds=int(match.group(4)),
        microseconds=_micros(match.group(5)),
    )


def decode_field(raw: Any, column: ColumnMeta) -> Value:
    """Decode one raw text-protocol field into a Value."""
    if raw is None:
        return NULL
    if not isinstance(raw, (bytes, bytearray, str)):
        return value_from_python(raw)

    if isinstance(raw, str):
        data = raw.encode('utf-8')
        text = raw
    else:
        data = bytes(raw)
        text = None

    if column.is_binary:
        return BytesValue(data)

    if text is None:
        text = _decode_text(data, column)

    type_code = column.type_code
    try:
        if type_code in INTEGER_TYPES:
            return IntValue(int(text))
        if type_code in FLOAT_TYPES:
            return FloatValue(float(text))
        if type_code in DECIMAL_TYPES:
            Decimal(text)
            return DecimalValue(text)
    except (ValueError, InvalidOperation) as e:
        raise TypeConversionError(
            f"Invalid numeric value '{text}' in column '{column.name}'"
        ) from e

    if type_code in DATE_TYPES:
        return parse_date(text)
    if type_code in DATETIME_TYPES:
        return parse_datetime(text)
    if type_code == FieldType.TIME:
        return parse_time(text)
    if type_code == FieldType.JSON:
        return JsonValue(text)
    return TextValue(text)


def value_from_python(obj: Any) -> Value:
    """Map an already-converted Python object (non-raw cursors) to a Value."""
    if obj is None:
        return NULL
    if isinstance(obj, bool):
        return IntValue(int(obj))
    if isinstance(obj, int):
        return IntValue(obj)
    if isinstance(obj, float):
        return FloatValue(obj)
    if isinstance(obj, Decimal):
        return DecimalValue(str(obj))
    if isinstance(obj, (bytes, bytearray)):
        return BytesValue(bytes(obj))
    if isinstance(obj, str):
        return TextValue(obj)
    if isinstance(obj, datetime):
        return DateTimeValue(
            obj.year, obj.month, obj.day,
            obj.hour, obj.minute, obj.second, obj.microsecond,
        )
    if isinstance(obj, date):
        return DateValue(obj.year, obj.month, obj.day)
    if isinstance(obj, timedelta):
        negative = obj < timedelta(0)
        span = -obj if negative else obj
        hours, remainder = divmod(span.seconds, 3600)
        minutes, seconds = divmod(remainder, 60)
        return TimeValue(negative, span.days, hours, minutes, seconds, span.microseconds)
    if isinstance(obj, (set, frozenset)):
        return TextValue(','.join(sorted(str(item) for item in obj)))
    raise TypeConversionError(f"from_value: unsupported Python type {type(obj).__name__}")
