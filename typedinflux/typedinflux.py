import logging
import re

import requests

import typedinflux  # in order to access the package-level variables default_*
from .errors import InfluxException, TransportError
from .lineprotocol import encode_rows
from .precision import Consistency, TimestampPrecision
from .results import decode_result_set
from .rows import DatabaseRow, DynamicInfluxRow, FieldKeyRow, MeasurementRow, TagKeyRow

logger = logging.getLogger(__name__)

_READ_ONLY_STATEMENT = re.compile(r"^\s*(SELECT|SHOW)\b", re.IGNORECASE)
_INTO_CLAUSE = re.compile(r"\bINTO\b", re.IGNORECASE)


def _substitute_defaults(host=None, port=None, db=None):
    if not host:
        host = typedinflux.default_host
    if not port:
        port = typedinflux.default_port
    if not db:
        db = typedinflux.default_db

    return host, port, db


def quote_identifier(name):
    """Double-quote a database/measurement name for use in InfluxQL."""
    return '"' + name.replace("\\", "\\\\").replace('"', '\\"') + '"'


def is_read_only(query):
    """True if every statement of ``query`` may be sent with GET."""
    statements = [s for s in query.split(";") if s.strip()]
    return all(
        _READ_ONLY_STATEMENT.match(s) and not _INTO_CLAUSE.search(s)
        for s in statements
    )


def _error_message(response):
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("error")
    return None


def check_response(response, what):
    """Raise InfluxException or TransportError for a non-2xx response."""
    if 200 <= response.status_code < 300:
        return
    message = _error_message(response)
    if message:
        raise InfluxException(message, response.status_code)
    raise TransportError(f"{what} returned {response.status_code}: {response.text}")


class ClientBase:
    """Endpoint and parameter handling shared by the blocking and asyncio clients."""

    def __init__(self, host=None, port=None, db=None, username=None,
                 password=None, ssl=False, timeout=None):
        self.host, self.port, self.db = _substitute_defaults(host=host, port=port, db=db)
        prefix = "https" if ssl else "http"
        self.url = f"{prefix}://{self.host}:{self.port}"
        self.timeout = timeout

        username = username if username is not None else typedinflux.user
        password = password if password is not None else typedinflux.pw
        self._auth_params = {"u": username, "p": password} if username else {}

    def __repr__(self):
        return f"<{self.__class__.__name__} url={self.url} db={self.db!r}>"

    def _database(self, db):
        db = db or self.db
        if not db:
            raise ValueError(
                "Database name must be provided either on this function or "
                "the client object"
            )
        return db

    def _query_request(self, query, db=None, precision=None):
        method = "GET" if is_read_only(query) else "POST"
        params = {"q": query, **self._auth_params}
        db = db or self.db
        if db:
            params["db"] = db
        if precision is not None:
            params["epoch"] = TimestampPrecision.parse(precision).epoch
        logger.debug("%s /query db=%s: %s", method, db, query)
        return method, params

    def _write_request(self, db, precision, consistency, retention_policy):
        params = {
            "db": self._database(db),
            "precision": TimestampPrecision.parse(precision).value,
            **self._auth_params,
        }
        if consistency is not None:
            params["consistency"] = Consistency.parse(consistency).value
        if retention_policy:
            params["rp"] = retention_policy
        return params

    @staticmethod
    def _json(response):
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"query returned invalid JSON: {response.text!r}") from exc

    def _decode(self, response, row_type, precision):
        check_response(response, "query")
        return decode_result_set(self._json(response), row_type, precision)

    @staticmethod
    def _version(response):
        check_response(response, "ping")
        return response.headers.get("X-Influxdb-Version")


class InfluxClient(ClientBase):
    """Blocking client on top of a pooled ``requests.Session``."""

    def __init__(self, host=None, port=None, db=None, username=None,
                 password=None, ssl=False, timeout=None, session=None):
        super().__init__(host=host, port=port, db=db, username=username,
                         password=password, ssl=ssl, timeout=timeout)
        self.session = session if session is not None else requests.Session()

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(self, method, endpoint, **kwargs):
        url = f"{self.url}/{endpoint}"
        try:
            return self.session.request(method=method, url=url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as exc:
            raise TransportError(
                f"Could not connect to {url}, is influxd running? ({exc})"
            ) from exc

    def ping(self, raise_on_fail=True):
        try:
            self._version(self._request("GET", "ping"))
        except (TransportError, InfluxException):
            if raise_on_fail:
                raise
            return False
        return True

    def get_influx_version(self):
        return self._version(self._request("GET", "ping"))

    def query(self, query, db=None, precision=None):
        """Run ``query`` and return the undecoded JSON envelope."""
        method, params = self._query_request(query, db, precision)
        response = self._request(method, "query", params=params)
        check_response(response, query)
        return self._json(response)

    def read(self, query, db=None, row_type=DynamicInfluxRow, precision=None):
        """Run ``query`` and decode every series into ``row_type`` rows.

        Raises InfluxException when no statement succeeded; partial failures
        of multi-statement queries are left on the individual results.
        """
        method, params = self._query_request(query, db, precision)
        response = self._request(method, "query", params=params)
        return self._decode(response, row_type, precision).raise_if_failed()

    def _execute(self, query, db=None, row_type=DynamicInfluxRow):
        result_set = self.read(query, db=db, row_type=row_type)
        result_set.raise_if_failed(partial=True)
        if not result_set.results:
            raise InfluxException(f"{query} returned no result")
        return result_set.results[0]

    def write(self, db, measurement, rows, precision=TimestampPrecision.NANOSECOND,
              consistency=None, retention_policy=None):
        params = self._write_request(db, precision, consistency, retention_policy)
        data = encode_rows(measurement, rows, params["precision"])
        if not data:
            logger.debug("Nothing to write to %s.%s", params["db"], measurement)
            return True

        logger.debug("POST /write db=%s: %d line(s)", params["db"], data.count("\n") + 1)
        response = self._request(
            "POST",
            "write",
            params=params,
            data=data.encode(),
            headers={"Content-Type": "application/octet-stream"},
        )
        check_response(response, f"write to {params['db']}")
        return True

    def show_databases(self):
        return self._execute("SHOW DATABASES", row_type=DatabaseRow)

    def _database_names(self):
        return [row.name for series in self.show_databases().series for row in series.rows]

    def create_database(self, db):
        if db in self._database_names():
            raise InfluxException(f"database already exists: {db}")
        self._execute(f"CREATE DATABASE {quote_identifier(db)}")
        return True

    def create_database_if_not_exists(self, db):
        if db in self._database_names():
            return False
        self._execute(f"CREATE DATABASE {quote_identifier(db)}")
        return True

    def drop_database(self, db):
        self._execute(f"DROP DATABASE {quote_identifier(db)}")
        return True

    def drop_database_if_exists(self, db):
        if db not in self._database_names():
            return False
        return self.drop_database(db)

    def show_measurements(self, db=None):
        return self._execute("SHOW MEASUREMENTS", self._database(db), MeasurementRow)

    def show_tag_keys(self, db=None, measurement=None):
        query = "SHOW TAG KEYS"
        if measurement:
            query += f" FROM {quote_identifier(measurement)}"
        return self._execute(query, self._database(db), TagKeyRow)

    def show_field_keys(self, db=None, measurement=None):
        query = "SHOW FIELD KEYS"
        if measurement:
            query += f" FROM {quote_identifier(measurement)}"
        return self._execute(query, self._database(db), FieldKeyRow)
