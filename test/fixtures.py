import datetime
import json
import random
import uuid
from dataclasses import dataclass
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
import requests
from requests.adapters import BaseAdapter

import typedinflux
from typedinflux import DynamicInfluxRow, InfluxClient, RowSchema

db = "test_" + str(uuid.uuid4()).replace("-", "")

REGIONS = ("west-eu", "north-eu", "west-us", "east-us", "asia")
HOSTS = ("ma-lt", "surface-book")


@dataclass
class ComputerInfo:
    timestamp: datetime.datetime = None
    host: str = None
    region: str = None
    cpu: float = None
    ram: int = None


(
    RowSchema(ComputerInfo)
    .timestamp("timestamp")
    .tag("host")
    .tag("region")
    .field("cpu", float)
    .field("ram", int, nullable=False)
    .register()
)


def typed_rows(start, count, include_nulls=False):
    rng = random.Random(count)
    rows = []
    timestamp = start
    for _ in range(count):
        rows.append(
            ComputerInfo(
                timestamp=timestamp,
                host=rng.choice(HOSTS),
                region=rng.choice(REGIONS),
                cpu=None if include_nulls else rng.random(),
                ram=rng.randrange(2 ** 31 - 1),
            )
        )
        timestamp += datetime.timedelta(seconds=1)
    return rows


def dynamic_rows(start, count):
    rng = random.Random(count)
    rows = []
    timestamp = start
    for _ in range(count):
        row = DynamicInfluxRow()
        row.fields["cpu"] = rng.random()
        row.fields["ram"] = rng.randrange(2 ** 31 - 1)
        row.tags["host"] = rng.choice(HOSTS)
        row.tags["region"] = rng.choice(REGIONS)
        row.timestamp = timestamp
        rows.append(row)
        timestamp += datetime.timedelta(seconds=1)
    return rows


# Live server
# ===========


@pytest.fixture(scope="module")
def client():
    with InfluxClient(host=typedinflux.default_host, port=typedinflux.default_port) as c:
        if not c.ping(raise_on_fail=False):
            pytest.skip(f"No InfluxDB at {c.url}")
        yield c


@pytest.fixture
def test_db(client):
    client.create_database(db)
    yield db
    client.drop_database(db)


# In-process fakes
# ================


class FakeInflux(BaseAdapter):
    """requests adapter answering from a queue of canned responses."""

    def __init__(self):
        super().__init__()
        self.requests = []
        self.responses = []
        self.error = None

    def respond(self, status=200, body=None, headers=None):
        self.responses.append((status, body, headers or {}))
        return self

    def params(self, index=-1):
        query = urlsplit(self.requests[index].url).query
        return {k: v[0] for k, v in parse_qs(query).items()}

    def send(self, request, **kwargs):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        status, body, headers = self.responses.pop(0) if self.responses else (204, None, {})

        response = requests.Response()
        response.status_code = status
        if body is None:
            response._content = b""
        elif isinstance(body, str):
            response._content = body.encode()
        else:
            response._content = json.dumps(body).encode()
        response.headers.update(headers)
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        return response

    def close(self):
        pass


@pytest.fixture
def fake():
    adapter = FakeInflux()
    session = requests.Session()
    session.mount("http://", adapter)
    adapter.client = InfluxClient(host="influx.test", port=8086, db="metrics", session=session)
    return adapter


class FakeAsyncInflux:
    """httpx.MockTransport handler with the same queue semantics as FakeInflux."""

    def __init__(self):
        self.requests = []
        self.responses = []

    def respond(self, status=200, body=None, headers=None):
        self.responses.append((status, body, headers or {}))
        return self

    def params(self, index=-1):
        return dict(self.requests[index].url.params)

    def __call__(self, request):
        self.requests.append(request)
        status, body, headers = self.responses.pop(0) if self.responses else (204, None, {})
        if body is None:
            return httpx.Response(status, headers=headers)
        if isinstance(body, str):
            return httpx.Response(status, text=body, headers=headers)
        return httpx.Response(status, json=body, headers=headers)


def databases_body(*names):
    return {
        "results": [
            {
                "statement_id": 0,
                "series": [
                    {"name": "databases", "columns": ["name"], "values": [[n] for n in names]}
                ],
            }
        ]
    }


EMPTY_RESULT = {"results": [{"statement_id": 0}]}
