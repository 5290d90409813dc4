"""Pytest configuration and shared fixtures."""
import os
import sys

import pytest

# Ensure project root (for tests.helpers) and src/ on sys.path
ROOT = os.path.dirname(os.path.abspath(__file__))
for p in (ROOT, os.path.join(ROOT, "src")):
    if p not in sys.path:
        sys.path.insert(0, p)


@pytest.fixture()
def vehicle_world():
    """Rights, raw data and rules for the X1 vehicle used across API and handler tests."""
    from tests.helpers.fakes import FakeDataSource, FakeRightsProvider, rights_for, rules

    provider = FakeRightsProvider(
        {"X1": rights_for("X1", ["objectId", "licensePlate", "mileage"])},
    )
    source = FakeDataSource(
        {"X1": {"objectId": "X1", "licensePlate": "AB-123", "brand": "VW", "mileage": 57432}},
    )
    rule_defs = rules(
        {"field": "vehicle.licensePlate", "action": "mask", "condition": {"accessCount": {"greaterThan": 5}}},
        {"field": "vehicle.mileage", "action": "generalize", "condition": {"always": True}, "parameters": {"roundTo": 1000}},
    )
    return provider, source, rule_defs


@pytest.fixture()
def app(vehicle_world):
    """Flask app wired to in-memory fakes."""
    from gatekeepr.api.app import create_app
    from gatekeepr.policy import RuleCatalog
    from tests.helpers.fakes import build_handler

    provider, source, rule_defs = vehicle_world
    handler = build_handler(provider, source, rule_defs)
    flask_app = create_app(handler, catalog=RuleCatalog(rule_defs))
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture()
def app_client(app):
    """A Flask test client for the app."""
    with app.test_client() as c:
        yield c


@pytest.fixture()
def client(app_client):
    """Alias used by some tests."""
    yield app_client
