"""Fixtures for API tests.

Runs the real application router, middleware and exception handlers with the
container and DB session swapped for fakes. The lifespan is not entered, so no
database, migration or sweeper is touched.
"""

import pytest
from fastapi.testclient import TestClient

from genledger.api.deps import get_container, get_db
from genledger.main import app


@pytest.fixture
def client(test_container, db):
    """TestClient over the app with fake dependencies."""

    async def _override_db():
        yield db

    app.dependency_overrides[get_container] = lambda: test_container
    app.dependency_overrides[get_db] = _override_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
