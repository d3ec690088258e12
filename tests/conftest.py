"""
Pytest configuration: make sure `import modules.stage_sla` and `import core`
work regardless of where pytest is invoked.

It prepends the backend directory to ``sys.path`` **before** any tests are
collected, and provides a fixed calendar, a controllable clock and an
in-memory database session.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# /path/to/project/tests -> project root/backend
BACKEND_ROOT = Path(__file__).resolve().parent.parent / "backend"

if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from core.db import Base  # noqa: E402
from modules.stage_sla import models  # noqa: E402,F401  (registers tables)
from modules.stage_sla.calculator import BusinessCalendar, init_calendar  # noqa: E402
from modules.stage_sla.clock import FixedClock  # noqa: E402


@pytest.fixture(autouse=True)
def utc_calendar():
    """Every test runs against a UTC, Saturday/Sunday calendar"""
    calendar = init_calendar(BusinessCalendar("UTC", [5, 6], 2))
    yield calendar
    init_calendar(None)


@pytest.fixture
def clock():
    """Wednesday 2024-01-03 09:00 UTC (2024-01-01 is a Monday)"""
    return FixedClock(datetime(2024, 1, 3, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()
