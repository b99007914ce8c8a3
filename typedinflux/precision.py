import datetime
from enum import Enum

EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)

NANOSECONDS_PER_UNIT = {
    "n": 1,
    "u": 1000,
    "ms": 1000 ** 2,
    "s": 1000 ** 3,
    "m": 60 * 1000 ** 3,
    "h": 3600 * 1000 ** 3,
}

# Spellings accepted for each write precision, including the query "epoch" ones:
_PRECISION_ALIASES = {
    "ns": "n",
    "us": "u",
    "µ": "u",
    "nanosecond": "n",
    "microsecond": "u",
    "millisecond": "ms",
    "second": "s",
    "minute": "m",
    "hour": "h",
}


class TimestampPrecision(Enum):
    """Timestamp unit used on the wire.

    The value is the ``precision`` parameter of ``/write``, ``epoch`` is the
    spelling the ``/query`` endpoint expects.
    """

    NANOSECOND = "n"
    MICROSECOND = "u"
    MILLISECOND = "ms"
    SECOND = "s"
    MINUTE = "m"
    HOUR = "h"

    @property
    def epoch(self):
        return "ns" if self is TimestampPrecision.NANOSECOND else self.value

    @property
    def nanoseconds(self):
        return NANOSECONDS_PER_UNIT[self.value]

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = _PRECISION_ALIASES.get(value.lower(), value.lower())
            if key in NANOSECONDS_PER_UNIT:
                return cls(key)
        valid = tuple(NANOSECONDS_PER_UNIT) + tuple(_PRECISION_ALIASES)
        raise ValueError(f"'precision' must be one of {valid}, not {value!r}")


class Consistency(Enum):
    """Write acknowledgement level for clustered InfluxDB."""

    ONE = "one"
    QUORUM = "quorum"
    ALL = "all"
    ANY = "any"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = tuple(c.value for c in cls)
            raise ValueError(
                f"'consistency' must be one of {valid}, not {value!r}"
            ) from None


def _as_utc(timestamp):
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=datetime.timezone.utc)
    return timestamp


def to_epoch(timestamp, precision):
    """Integer count of ``precision`` units between the epoch and ``timestamp``.

    Naive datetimes are taken to be UTC. Sub-unit remainders are floored.
    """
    precision = TimestampPrecision.parse(precision)
    delta = _as_utc(timestamp) - EPOCH
    nanoseconds = (
        (delta.days * 86400 + delta.seconds) * 1000 ** 3 + delta.microseconds * 1000
    )
    return nanoseconds // precision.nanoseconds


def from_epoch(value, precision):
    """Inverse of to_epoch; returns an aware UTC datetime truncated to microseconds."""
    precision = TimestampPrecision.parse(precision)
    nanoseconds = int(value) * precision.nanoseconds
    return EPOCH + datetime.timedelta(microseconds=nanoseconds // 1000)


def to_iso8601(timestamp):
    """RFC3339 string usable inside an InfluxQL time comparison."""
    return _as_utc(timestamp).astimezone(datetime.timezone.utc).strftime(
        "%Y-%m-%dT%H:%M:%S.%fZ"
    )
