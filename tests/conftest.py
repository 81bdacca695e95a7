"""Pytest fixtures for mileage forensics tests."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest
import structlog

from mileage_forensics.config.settings import ForensicsSettings, Settings
from mileage_forensics.forensics.types import BookingMileageRecord

BASE_DATE = datetime(2025, 3, 1, 10, 0, tzinfo=UTC)


# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test.

    This ensures tests that modify structlog global state
    don't affect other tests.
    """
    yield
    structlog.reset_defaults()
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def mock_settings() -> Settings:
    """Create mock settings for testing."""
    return Settings(
        ENVIRONMENT="test",
        log_level="DEBUG",
        forensics=ForensicsSettings(),
    )


# =============================================================================
# Booking Fixtures
# =============================================================================


BookingFactory = Callable[..., BookingMileageRecord]


@pytest.fixture
def make_booking() -> BookingFactory:
    """Factory for booking records laid out by day offset from BASE_DATE."""
    counter = iter(range(1, 10_000))

    def _make(
        start_odometer: float | None,
        end_odometer: float | None,
        start_day: float = 0,
        end_day: float | None = None,
        status: str = "completed",
        booking_id: str | None = None,
    ) -> BookingMileageRecord:
        n = next(counter)
        end_day = start_day + 1 if end_day is None else end_day
        return BookingMileageRecord(
            booking_id=booking_id or f"bk_{n}",
            booking_code=f"RENT-{n:04d}",
            start_date=BASE_DATE + timedelta(days=start_day),
            end_date=BASE_DATE + timedelta(days=end_day),
            start_odometer=start_odometer,
            end_odometer=end_odometer,
            status=status,
        )

    return _make
