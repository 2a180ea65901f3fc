"""
Drone Routes Backend — Test Configuration (conftest.py)
=========================================================

What:  Shared pytest fixtures for the whole suite.
How:   No real PostgreSQL or MinIO is needed. The DB session and the MinIO
       client are mocks; the HTTP tests override the session dependency.

Fixture Hierarchy (all function-scoped):
    ├── mock_db_session:  AsyncMock standing in for AsyncSession
    ├── make_result:      Builds the object returned by `await db.execute()`
    ├── csv_bytes:        Builds a telemetry CSV from row specs
    ├── minio_client:     MagicMock with the Minio methods the gateway calls
    ├── gateway:          ObjectStoreGateway wired to minio_client
    ├── sample_drone:     A persisted-looking Drone instance
    └── test_client:      HTTPX AsyncClient against the FastAPI app
"""

import os

# Must be set before droneroutes.config is imported anywhere
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ["MINIO_BUCKET"] = "test-bucket"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0.5"
os.environ.pop("MINIO_PUBLIC_URL", None)

from datetime import datetime, timezone
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from minio.error import MinioException

from droneroutes.models.drone import Drone
from droneroutes.services.csv_parser import EXPECTED_COLUMNS, FIELD_BY_INDEX
from droneroutes.services.object_store import ObjectStoreGateway


# ══════════════════════════════════════════════════════════════════════════
# Helpers
# ══════════════════════════════════════════════════════════════════════════

class FakeS3Error(MinioException):
    """MinioException carrying an S3 error code, like minio.error.S3Error."""

    def __init__(self, code: str):
        super().__init__(f"S3 operation failed; code: {code}")
        self.code = code


def telemetry_row(file_name: str, latitude: str = "55.7512", longitude: str = "37.6184", **cells) -> List[str]:
    """One 21-cell CSV row; keyword args override cells by field name."""
    values: Dict[str, str] = {
        "file_name": file_name,
        "date": "2024-06-01",
        "time": "12:03:44",
        "time_status": "A",
        "aex": "1.2",
        "latitude": latitude,
        "longitude": longitude,
        "speed": "8.4",
        "course": "271.0",
        "magn": "0.44",
        "altitude": "120.5",
        "spp": "3",
        "srr": "7",
        "m_lux": "1500",
        "r_ir_1": "0.11",
        "g_ir": "0.22",
        "r_ir_2": "0.33",
        "i_ir": "0.44",
        "i_bright": "900",
        "shutter": "1/1000",
        "gain": "2",
    }
    values.update(cells)
    return [values[name] for name in FIELD_BY_INDEX]


def build_csv(rows: List[List[str]], header: Optional[List[str]] = None) -> bytes:
    lines = [",".join(header if header is not None else EXPECTED_COLUMNS)]
    lines.extend(",".join(row) for row in rows)
    return ("\r\n".join(lines) + "\r\n").encode("utf-8")


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Mock async database session.

    Usage:
        mock_db_session.execute = AsyncMock(return_value=make_result(one=route))
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.delete = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def make_result():
    """
    Builds a synchronous Result stand-in.

        one:    value for scalar_one_or_none() and scalars().first()
        many:   list for scalars().all()
        scalar: value for scalar()
    """
    def _make(one=None, many=None, scalar=None):
        result = MagicMock()
        result.scalar_one_or_none.return_value = one
        result.scalar.return_value = scalar
        result.scalars.return_value.first.return_value = one
        result.scalars.return_value.all.return_value = list(many or [])
        return result
    return _make


@pytest.fixture
def sample_drone():
    now = datetime.now(timezone.utc)
    return Drone(
        id=uuid4(),
        drone_id="DR-042",
        model="Matrice 300",
        serial_number="SN-0042",
        current_battery_charge=87,
        total_flight_time=340,
        created_at=now,
        updated_at=now,
    )


# ══════════════════════════════════════════════════════════════════════════
# CSV Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def csv_bytes():
    """
    Builds CSV bytes. Pass file names for default rows, or full rows.

        csv_bytes(["IMG_1.tif", "IMG_2.tif"])
        csv_bytes(rows=[telemetry_row("IMG_1.tif", latitude="")])
    """
    def _build(file_names=(), rows=None, header=None):
        all_rows = [telemetry_row(name) for name in file_names]
        all_rows.extend(rows or [])
        return build_csv(all_rows, header=header)
    return _build


# ══════════════════════════════════════════════════════════════════════════
# Object Store Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def minio_client():
    client = MagicMock()
    client.bucket_exists.return_value = True
    client.put_object.return_value = MagicMock()
    client.stat_object.return_value = MagicMock()
    client.presigned_get_object.return_value = "http://minio.test/test-bucket/signed"
    return client


@pytest.fixture
def gateway(minio_client):
    return ObjectStoreGateway(
        client=minio_client,
        bucket="test-bucket",
        public_url="",
        upload_timeout=5.0,
        retry_attempts=3,
        url_expiry=3600,
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(mock_db_session):
    """
    HTTPX AsyncClient routed straight into the app via ASGITransport.

    get_db_session is overridden with mock_db_session; the lifespan does not
    run, so no bucket check happens.
    """
    from droneroutes.database import get_db_session
    from droneroutes.main import app

    async def override_session():
        yield mock_db_session

    app.dependency_overrides[get_db_session] = override_session
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def row():
    """telemetry_row() factory for tests that need hand-shaped CSV rows."""
    return telemetry_row


@pytest.fixture
def s3_error():
    """FakeS3Error class: s3_error("NoSuchKey")."""
    return FakeS3Error
