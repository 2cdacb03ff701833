"""
Shared test fixtures: one mongomock database, app and TestClient per test, with
uploads written under the test's tmp_path.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.support import api_test_client, bearer, build_test_settings, create_admin, new_database


@pytest.fixture
def settings(tmp_path: Path):
    return build_test_settings(tmp_path)


@pytest.fixture
def db():
    return new_database()


@pytest.fixture
def client(settings, db):
    with api_test_client(settings, db) as test_client:
        yield test_client


@pytest.fixture
def admin(db):
    return create_admin(db)


@pytest.fixture
def auth_headers(admin, settings):
    return bearer(admin, settings)
