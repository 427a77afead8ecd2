"""Shared fixtures for the wfs_dump test suite."""

import json
import os
import threading
from typing import Callable, Dict, List, Optional

import pytest

from config import get_app_config
from services.wfs_client import WFSResponse
from wfs_dump.config import build_config
from wfs_dump.exceptions import LoadError


ENV_PREFIXES = ("WFSDUMP_", "POSTGIS_")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Run every test without operator environment settings."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIXES) or key == "DEBUG_LOGGING":
            monkeypatch.delenv(key, raising=False)
    get_app_config.cache_clear()
    yield
    get_app_config.cache_clear()


def point_feature(x: float, y: float, properties: Optional[Dict] = None, feature_id=None) -> Dict:
    feature = {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [x, y]},
        "properties": properties if properties is not None else {},
    }
    if feature_id is not None:
        feature["id"] = feature_id
    return feature


def polygon_feature(coords: List, properties: Optional[Dict] = None, feature_id=None) -> Dict:
    feature = {
        "type": "Feature",
        "geometry": {"type": "Polygon", "coordinates": [coords]},
        "properties": properties if properties is not None else {},
    }
    if feature_id is not None:
        feature["id"] = feature_id
    return feature


def feature_collection(features: List[Dict]) -> bytes:
    return json.dumps({"type": "FeatureCollection", "features": features}).encode("utf-8")


@pytest.fixture
def make_point():
    return point_feature


@pytest.fixture
def make_polygon():
    return polygon_feature


@pytest.fixture
def make_collection():
    return feature_collection


class FakeWFSClient:
    """
    Stand-in for WFSClient.

    responder(extent) returns the WFSResponse for one request. The client
    also tracks how many requests were in flight at the same time.
    """

    def __init__(self, responder: Callable):
        self.responder = responder
        self.requests = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def get_feature(self, layer, extent):
        with self._lock:
            self.requests.append((layer, extent))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            return self.responder(extent)
        finally:
            with self._lock:
                self.in_flight -= 1


class FakeRepository:
    """Stand-in for FeatureTableRepository that records every load."""

    def __init__(self, fail_tiles=()):
        self.fail_tiles = set(fail_tiles)
        self.loads = []
        self.verify_calls = 0
        self._lock = threading.Lock()

    def verify_destination(self):
        self.verify_calls += 1

    def load_tile(self, rows, tile=None):
        with self._lock:
            self.loads.append((tile, list(rows)))
        if tile is not None and tile.tile_id in self.fail_tiles:
            raise LoadError("UniqueViolation: duplicate key value")
        return len(rows)

    @property
    def loaded_rows(self):
        return [row for _, rows in self.loads for row in rows]


def ok_response(body: bytes) -> WFSResponse:
    return WFSResponse(success=True, status_code=200, content=body, content_type="application/json")


@pytest.fixture
def fake_client_factory():
    return FakeWFSClient


@pytest.fixture
def make_response():
    return ok_response


@pytest.fixture
def fake_repository_factory():
    return FakeRepository


@pytest.fixture
def fake_repository():
    return FakeRepository()


@pytest.fixture
def empty_response():
    return ok_response(feature_collection([]))


@pytest.fixture
def dump_config():
    """Run configuration for a zoom 1 world grid."""
    return build_config(
        wfs_url="http://wfs.test/geoserver/wfs",
        layer="test:parcels",
        connection="host=db.test user=loader dbname=gis",
        zoom=1,
        jobs=2
    )
