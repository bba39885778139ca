"""Pytest configuration and fixtures for parking tests."""
import os
import sys
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from parking_app.main import create_app
from parking_app.service import ParkingService


class FakeClock:
    """Clock that only moves when a test tells it to."""

    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 14, 9, 0, 0))


@pytest.fixture
def service(clock):
    return ParkingService(capacity=20, clock=clock)


@pytest.fixture
def client(service):
    """Test client over a fresh app and parking state."""
    app = create_app(parking_service=service)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def occupy_payload():
    return {
        "slotId": 5,
        "carNumber": "ABC123",
        "ownerName": "Jane",
        "phone": "555",
    }
