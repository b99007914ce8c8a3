"""asyncio flavour of InfluxClient, on top of a pooled ``httpx.AsyncClient``.

Every method is an independent request; several of them can be awaited
concurrently with ``asyncio.gather``. Cancelling a task aborts its request.
"""

import logging

import httpx

from .errors import InfluxException, TransportError
from .lineprotocol import encode_rows
from .precision import TimestampPrecision
from .rows import DatabaseRow, DynamicInfluxRow, FieldKeyRow, MeasurementRow, TagKeyRow
from .typedinflux import ClientBase, check_response, quote_identifier

logger = logging.getLogger(__name__)


class AsyncInfluxClient(ClientBase):
    def __init__(self, host=None, port=None, db=None, username=None,
                 password=None, ssl=False, timeout=None, transport=None):
        super().__init__(host=host, port=port, db=db, username=username,
                         password=password, ssl=ssl, timeout=timeout)
        self.session = httpx.AsyncClient(base_url=self.url, timeout=timeout, transport=transport)

    async def close(self):
        await self.session.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def _request(self, method, endpoint, **kwargs):
        try:
            return await self.session.request(method, f"/{endpoint}", **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(
                f"Could not connect to {self.url}/{endpoint}, is influxd running? ({exc})"
            ) from exc

    async def ping(self, raise_on_fail=True):
        try:
            self._version(await self._request("GET", "ping"))
        except (TransportError, InfluxException):
            if raise_on_fail:
                raise
            return False
        return True

    async def get_influx_version(self):
        return self._version(await self._request("GET", "ping"))

    async def query(self, query, db=None, precision=None):
        method, params = self._query_request(query, db, precision)
        response = await self._request(method, "query", params=params)
        check_response(response, query)
        return self._json(response)

    async def read(self, query, db=None, row_type=DynamicInfluxRow, precision=None):
        method, params = self._query_request(query, db, precision)
        response = await self._request(method, "query", params=params)
        return self._decode(response, row_type, precision).raise_if_failed()

    async def _execute(self, query, db=None, row_type=DynamicInfluxRow):
        result_set = await self.read(query, db=db, row_type=row_type)
        result_set.raise_if_failed(partial=True)
        if not result_set.results:
            raise InfluxException(f"{query} returned no result")
        return result_set.results[0]

    async def write(self, db, measurement, rows, precision=TimestampPrecision.NANOSECOND,
                    consistency=None, retention_policy=None):
        params = self._write_request(db, precision, consistency, retention_policy)
        # Encoding errors surface before anything is sent
        data = encode_rows(measurement, rows, params["precision"])
        if not data:
            logger.debug("Nothing to write to %s.%s", params["db"], measurement)
            return True

        logger.debug("POST /write db=%s: %d line(s)", params["db"], data.count("\n") + 1)
        response = await self._request(
            "POST",
            "write",
            params=params,
            content=data.encode(),
            headers={"Content-Type": "application/octet-stream"},
        )
        check_response(response, f"write to {params['db']}")
        return True

    async def show_databases(self):
        return await self._execute("SHOW DATABASES", row_type=DatabaseRow)

    async def _database_names(self):
        result = await self.show_databases()
        return [row.name for series in result.series for row in series.rows]

    async def create_database(self, db):
        if db in await self._database_names():
            raise InfluxException(f"database already exists: {db}")
        await self._execute(f"CREATE DATABASE {quote_identifier(db)}")
        return True

    async def create_database_if_not_exists(self, db):
        if db in await self._database_names():
            return False
        await self._execute(f"CREATE DATABASE {quote_identifier(db)}")
        return True

    async def drop_database(self, db):
        await self._execute(f"DROP DATABASE {quote_identifier(db)}")
        return True

    async def drop_database_if_exists(self, db):
        if db not in await self._database_names():
            return False
        return await self.drop_database(db)

    async def show_measurements(self, db=None):
        return await self._execute("SHOW MEASUREMENTS", self._database(db), MeasurementRow)

    async def show_tag_keys(self, db=None, measurement=None):
        query = "SHOW TAG KEYS"
        if measurement:
            query += f" FROM {quote_identifier(measurement)}"
        return await self._execute(query, self._database(db), TagKeyRow)

    async def show_field_keys(self, db=None, measurement=None):
        query = "SHOW FIELD KEYS"
        if measurement:
            query += f" FROM {quote_identifier(measurement)}"
        return await self._execute(query, self._database(db), FieldKeyRow)
