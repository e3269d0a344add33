import pytest

from shared.logger import configure_logging


@pytest.fixture(autouse=True)
def _default_logging():
    """Rebind structlog to the current sys.stderr so a stream closed by an
    earlier test's capture is never reused."""
    configure_logging()
    yield
