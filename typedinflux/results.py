"""
Decoding of the /query JSON envelope

    {"results": [{"statement_id": 0,
                  "series": [{"name": ..., "tags": {...},
                              "columns": [...], "values": [[...], ...]}],
                  "error": ...}]}

into InfluxResultSet -> InfluxResult -> InfluxSeries -> rows.
"""

import datetime
import logging
import re
from dataclasses import dataclass, field

from .errors import InfluxException, TypeMismatchError
from .precision import TimestampPrecision, from_epoch
from .rows import TIME_COLUMN, DynamicInfluxRow, schema_for

logger = logging.getLogger(__name__)

_RFC3339 = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:?\d{2})$"
)


@dataclass
class InfluxSeries:
    name: str = None
    tags: dict = field(default_factory=dict)
    rows: list = field(default_factory=list)


@dataclass
class InfluxResult:
    statement_id: int = None
    series: list = field(default_factory=list)
    error: str = None
    messages: list = field(default_factory=list)

    @property
    def succeeded(self):
        return self.error is None


@dataclass
class InfluxResultSet:
    results: list = field(default_factory=list)

    @property
    def succeeded(self):
        return all(result.succeeded for result in self.results)

    def raise_if_failed(self, partial=False):
        """Raise InfluxException for the first failed statement.

        By default only when no statement succeeded; with ``partial=True``
        as soon as any statement failed.
        """
        failed = [result for result in self.results if not result.succeeded]
        if not failed:
            return self
        if partial or len(failed) == len(self.results):
            raise InfluxException(failed[0].error)
        return self


def parse_time(value, precision=None):
    """Turn a ``time`` column value into an aware UTC datetime.

    Integers are epoch counts in ``precision`` (nanoseconds when None),
    strings are RFC3339 as InfluxDB prints them.
    """
    if value is None:
        return None
    if isinstance(value, str):
        match = _RFC3339.match(value)
        if not match:
            raise TypeMismatchError(f"unparseable time value {value!r}")
        seconds, fraction, offset = match.groups()
        # datetime only holds microseconds
        fraction = (fraction or "")[:6].ljust(6, "0")
        if offset == "Z":
            offset = "+0000"
        timestamp = datetime.datetime.strptime(
            f"{seconds}.{fraction}{offset.replace(':', '')}", "%Y-%m-%dT%H:%M:%S.%f%z"
        )
        return timestamp.astimezone(datetime.timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return from_epoch(value, precision or TimestampPrecision.NANOSECOND)
    raise TypeMismatchError(f"unexpected time value {value!r}")


def coerce(column, value):
    """Convert a JSON value to the declared type of ``column``."""
    if value is None:
        if column.nullable:
            return None
        raise TypeMismatchError(f"column '{column.key}' is null but not nullable")

    expected = column.type
    if expected is bool:
        if isinstance(value, bool):
            return value
    elif expected is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
    elif expected is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif expected is str:
        if isinstance(value, str):
            return value

    raise TypeMismatchError(
        f"column '{column.key}' expects {expected.__name__}, got {value!r}"
    )


def _decode_dynamic(columns, values, tags, precision):
    rows = []
    for value_row in values:
        row = DynamicInfluxRow(tags=dict(tags))
        for name, value in zip(columns, value_row):
            if name == TIME_COLUMN:
                row.timestamp = parse_time(value, precision)
            else:
                row.fields[name] = value
        rows.append(row)
    return rows


def _decode_typed(schema, columns, values, tags, precision):
    present = set(columns) | set(tags)
    for key, column in schema.fields.items():
        if not column.nullable and key not in present:
            raise TypeMismatchError(
                f"{schema.row_type.__name__}: column '{key}' is missing from the "
                f"response but not nullable"
            )

    plan = []
    for index, name in enumerate(columns):
        column = schema.column(name)
        if column is not None:
            plan.append((index, column))
    series_tags = [
        (schema.tags[key], value) for key, value in tags.items() if key in schema.tags
    ]

    rows = []
    for value_row in values:
        row = schema.new_row()
        for column, value in series_tags:
            column.set(row, value)
        for index, column in plan:
            value = value_row[index] if index < len(value_row) else None
            if column is schema.timestamp_column:
                column.set(row, parse_time(value, precision))
            else:
                column.set(row, coerce(column, value))
        rows.append(row)
    return rows


def decode_series(series, row_type=DynamicInfluxRow, precision=None):
    columns = series.get("columns") or []
    values = series.get("values") or []
    tags = series.get("tags") or {}

    if row_type is DynamicInfluxRow:
        rows = _decode_dynamic(columns, values, tags, precision)
    else:
        schema = schema_for(row_type)
        if schema is None:
            raise TypeMismatchError(f"no RowSchema registered for {row_type.__name__}")
        rows = _decode_typed(schema, columns, values, tags, precision)

    return InfluxSeries(name=series.get("name"), tags=dict(tags), rows=rows)


def decode_result_set(envelope, row_type=DynamicInfluxRow, precision=None):
    """Decode a parsed /query response body.

    A top-level ``error`` raises InfluxException; a per-statement ``error`` is
    kept on its InfluxResult.
    """
    if precision is not None:
        precision = TimestampPrecision.parse(precision)
    if "error" in envelope:
        raise InfluxException(envelope["error"])

    results = []
    for raw in envelope.get("results", []):
        result = InfluxResult(
            statement_id=raw.get("statement_id"),
            error=raw.get("error"),
            messages=raw.get("messages") or [],
        )
        for message in result.messages:
            if isinstance(message, dict):
                message = message.get("text", message)
            logger.info("InfluxDB: %s", message)
        if result.error is not None:
            logger.warning(
                "Statement %s failed: %s", result.statement_id, result.error
            )
        else:
            result.series = [
                decode_series(series, row_type, precision)
                for series in raw.get("series", [])
            ]
        results.append(result)

    return InfluxResultSet(results)
