"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from pathlib import Path

# Set environment variables BEFORE any imports that might use them
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOG_FORMAT"] = "text"
os.environ["OCR_SPACE_API_KEY"] = ""
os.environ["VIN_DECODE_ENABLED"] = "false"

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


VALID_VIN = "1HGCM82633A004352"
VALID_VIN_X_CHECK = "1HGBH41JXMN109186"

RELEASE_FORM_TEXT = """VEHICLE RELEASE AUTHORIZATION
Release Form #: RF-20931
Transaction ID: 4451-778
Arrival Date: 2024/3/7

2019 Honda Civic LX
VIN: 1HGCM82633A004352
Color: Black
Odometer: 45,678 km
Transmission: Automatic

Selling Dealership
Lakeshore Motors Inc
123 Industrial Rd, Laval, QC, H7L 4S3
Tel: 450-555-0199

Pickup Location:
8670 10e Avenue, Montreal, QC, H1Z 3B8

Buying Dealership
Prairie Auto Group
55 Main Street, Winnipeg, MB, R3C 1A1
Phone: (204) 555-0101
"""


@pytest.fixture(autouse=True)
def fresh_config():
    """Reload configuration from the environment for every test."""
    from core.config import reset_config

    reset_config()
    yield
    reset_config()


@pytest.fixture
def release_form_text():
    """Native text of a typical dealer release form."""
    return RELEASE_FORM_TEXT


@pytest.fixture
def valid_vin():
    return VALID_VIN


@pytest.fixture(scope="session")
def app():
    """Create FastAPI test application."""
    from api.main import app

    return app


@pytest.fixture(scope="session")
def client(app):
    """Create test client."""
    from fastapi.testclient import TestClient

    return TestClient(app)
