""" typedinflux - Typed rows, line protocol and result sets for InfluxDB """

import os

__version__ = "0.2.0"

default_host = os.environ.get("INFLUXDB_HOST", "localhost")
default_port = int(os.environ.get("INFLUXDB_PORT", "8086"))
user = os.environ.get("INFLUXDB_USER", "")
pw = os.environ.get("INFLUXDB_PASSWORD", "")
default_db = os.environ.get("INFLUXDB_DB", "")


from .errors import InfluxError
from .errors import EncodingError
from .errors import TransportError
from .errors import InfluxException
from .errors import TypeMismatchError
from .precision import TimestampPrecision
from .precision import Consistency
from .rows import RowSchema
from .rows import DynamicInfluxRow
from .rows import DatabaseRow
from .rows import MeasurementRow
from .rows import TagKeyRow
from .rows import FieldKeyRow
from .lineprotocol import encode_rows
from .results import InfluxResultSet
from .results import InfluxResult
from .results import InfluxSeries
from .results import decode_result_set
from .typedinflux import InfluxClient
from .aio import AsyncInfluxClient
