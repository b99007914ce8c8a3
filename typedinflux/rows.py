"""
Row model.

A typed row is any class whose instances expose the timestamp, tags and
fields as attributes. The mapping between attributes and InfluxDB columns is
never guessed: it is declared once per class with a RowSchema and registered,
e.g.

    @dataclass
    class ComputerInfo:
        timestamp: datetime.datetime = None
        host: str = None
        cpu: float = None

    (RowSchema(ComputerInfo)
        .timestamp("timestamp")
        .tag("host")
        .field("cpu", float)
        .register())

Rows without a fixed shape use DynamicInfluxRow.
"""

import datetime
import operator
from dataclasses import dataclass, field

TIME_COLUMN = "time"

FIELD_TYPES = (int, float, str, bool)

_SCHEMAS = {}


class Column:
    """One attribute <-> column association with its accessor and mutator."""

    __slots__ = ("key", "attribute", "type", "nullable", "get", "set")

    def __init__(self, key, attribute, type_, nullable=True):
        self.key = key
        self.attribute = attribute
        self.type = type_
        self.nullable = nullable
        self.get = operator.attrgetter(attribute)
        self.set = lambda row, value: setattr(row, attribute, value)

    def __repr__(self):
        return f"<Column {self.key}->{self.attribute} {self.type.__name__}>"


class RowSchema:
    def __init__(self, row_type, factory=None):
        self.row_type = row_type
        self.factory = factory if factory is not None else row_type
        self.timestamp_column = None
        self.tags = {}
        self.fields = {}

    def _check_key(self, key):
        if not key:
            raise ValueError(f"{self.row_type.__name__}: column key must not be empty")
        if key == TIME_COLUMN or key in self.tags or key in self.fields:
            raise ValueError(
                f"{self.row_type.__name__}: column '{key}' is declared twice"
            )

    def timestamp(self, attribute):
        self.timestamp_column = Column(TIME_COLUMN, attribute, datetime.datetime)
        return self

    def tag(self, attribute, key=None):
        key = attribute if key is None else key
        self._check_key(key)
        self.tags[key] = Column(key, attribute, str)
        return self

    def field(self, attribute, type_, key=None, nullable=True):
        if type_ not in FIELD_TYPES:
            raise ValueError(
                f"field type must be one of {[t.__name__ for t in FIELD_TYPES]}, "
                f"not {type_!r}"
            )
        key = attribute if key is None else key
        self._check_key(key)
        self.fields[key] = Column(key, attribute, type_, nullable)
        return self

    def register(self):
        if not self.fields:
            raise ValueError(f"{self.row_type.__name__}: a row needs at least one field")
        _SCHEMAS[self.row_type] = self
        return self

    def column(self, key):
        if key == TIME_COLUMN:
            return self.timestamp_column
        return self.tags.get(key) or self.fields.get(key)

    def new_row(self):
        return self.factory()

    def __repr__(self):
        return (
            f"<RowSchema {self.row_type.__name__} tags={list(self.tags)} "
            f"fields={list(self.fields)}>"
        )


def schema_for(row_type):
    """The registered RowSchema of ``row_type`` or None."""
    return _SCHEMAS.get(row_type)


@dataclass
class DynamicInfluxRow:
    tags: dict = field(default_factory=dict)
    fields: dict = field(default_factory=dict)
    timestamp: datetime.datetime = None


@dataclass
class DatabaseRow:
    name: str = None


@dataclass
class MeasurementRow:
    name: str = None


@dataclass
class TagKeyRow:
    tag_key: str = None


@dataclass
class FieldKeyRow:
    field_key: str = None
    field_type: str = None


RowSchema(DatabaseRow).field("name", str, nullable=False).register()
RowSchema(MeasurementRow).field("name", str, nullable=False).register()
RowSchema(TagKeyRow).field("tag_key", str, key="tagKey", nullable=False).register()
(
    RowSchema(FieldKeyRow)
    .field("field_key", str, key="fieldKey", nullable=False)
    .field("field_type", str, key="fieldType")
    .register()
)
