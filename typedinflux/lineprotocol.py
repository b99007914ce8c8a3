"""
Line protocol encoding:

    measurement,tag1=val1,tag2=val2 field1=val1,field2=val2 timestamp

>>> from typedinflux.rows import DynamicInfluxRow
>>> row = DynamicInfluxRow({"region": "west eu", "host": "a"}, {"cpu": 0.5, "ram": 12})
>>> print(encode_rows("computerInfo", [row]))
computerInfo,host=a,region=west\\ eu cpu=0.5,ram=12i
"""

import datetime
import logging
import math
import re

from .errors import EncodingError
from .precision import TimestampPrecision, to_epoch
from .rows import DynamicInfluxRow, schema_for

logger = logging.getLogger(__name__)

_MEASUREMENT_SPECIAL = re.compile(r"([, ])")
_KEY_SPECIAL = re.compile(r"([,= ])")


def escape_measurement(name):
    return _MEASUREMENT_SPECIAL.sub(r"\\\1", name)


def escape_key(string):
    """Escape a tag key, tag value or field key."""
    return _KEY_SPECIAL.sub(r"\\\1", string)


def escape_string_value(string):
    return '"' + string.replace("\\", "\\\\").replace('"', '\\"') + '"'


def format_field_value(key, value):
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"{value}i"
    if isinstance(value, float):
        if not math.isfinite(value):
            raise EncodingError(f"field '{key}' is not a finite number: {value}")
        return repr(value)
    if isinstance(value, str):
        return escape_string_value(value)
    raise EncodingError(
        f"field '{key}' has unsupported type {type(value).__name__}"
    )


def _check_identifier(what, string):
    if not string:
        raise EncodingError(f"{what} must not be empty")
    if "\n" in string:
        raise EncodingError(f"{what} must not contain a newline: {string!r}")


def _format_timestamp(timestamp, precision):
    if isinstance(timestamp, datetime.datetime):
        return str(to_epoch(timestamp, precision))
    if isinstance(timestamp, int) and not isinstance(timestamp, bool):
        return str(timestamp)
    raise EncodingError(
        f"timestamp must be a datetime or an int, not {type(timestamp).__name__}"
    )


def format_line(measurement, tags, fields, timestamp=None,
                precision=TimestampPrecision.NANOSECOND):
    """One line of line protocol. None-valued tags and fields are left out."""
    _check_identifier("measurement", measurement)
    result = escape_measurement(measurement)

    tag_items = []
    for key, value in tags.items():
        _check_identifier("tag key", key)
        if value is None or value == "":
            continue
        if not isinstance(value, str):
            raise EncodingError(
                f"tag '{key}' must be a str, not {type(value).__name__}"
            )
        _check_identifier(f"tag '{key}'", value)
        tag_items.append((key, value))
    if tag_items:
        result += ","
        result += ",".join(
            f"{escape_key(k)}={escape_key(v)}" for k, v in sorted(tag_items)
        )

    field_strings = []
    for key, value in fields.items():
        _check_identifier("field key", key)
        if value is None:
            continue
        field_strings.append(f"{escape_key(key)}={format_field_value(key, value)}")
    if not field_strings:
        raise EncodingError(
            f"row of '{measurement}' has no non-null fields: {dict(fields)!r}"
        )
    result += " "
    result += ",".join(field_strings)

    if timestamp is not None:
        result += " "
        result += _format_timestamp(timestamp, precision)

    return result


def declared_value(column, value):
    """Convert a typed row field to the type its RowSchema declares."""
    if value is None:
        return None
    expected = column.type
    if expected is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif expected is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
    elif isinstance(value, expected):
        return value
    raise EncodingError(
        f"field '{column.key}' expects {expected.__name__}, got {value!r}"
    )


def row_columns(row, schema=None):
    """(tags, fields, timestamp) of a typed or dynamic row."""
    if isinstance(row, DynamicInfluxRow):
        return row.tags, row.fields, row.timestamp

    if schema is None:
        schema = schema_for(type(row))
    if schema is None:
        raise EncodingError(f"no RowSchema registered for {type(row).__name__}")

    tags = {key: column.get(row) for key, column in schema.tags.items()}
    fields = {
        key: declared_value(column, column.get(row))
        for key, column in schema.fields.items()
    }
    timestamp = None
    if schema.timestamp_column is not None:
        timestamp = schema.timestamp_column.get(row)
    return tags, fields, timestamp


def encode_lines(measurement, rows, precision=TimestampPrecision.NANOSECOND):
    precision = TimestampPrecision.parse(precision)
    schemas = {}
    for row in rows:
        row_type = type(row)
        if row_type not in schemas and row_type is not DynamicInfluxRow:
            schemas[row_type] = schema_for(row_type)
        tags, fields, timestamp = row_columns(row, schemas.get(row_type))
        yield format_line(measurement, tags, fields, timestamp, precision)


def encode_rows(measurement, rows, precision=TimestampPrecision.NANOSECOND):
    """Newline-joined line protocol for ``rows``; raises EncodingError on the
    first invalid row so nothing is sent."""
    lines = list(encode_lines(measurement, rows, precision))
    logger.debug("Encoded %d line(s) for measurement %s", len(lines), measurement)
    return "\n".join(lines)
