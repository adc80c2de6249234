"""Shared fixtures.

``database`` builds its engine at import time from ``get_settings()``, which
creates the data directory. Point it at a throwaway directory before any
project module is imported so the test run never writes into ``./data``.
"""

import os
import tempfile

os.environ.setdefault("FINANCE_DATA_DIR", tempfile.mkdtemp(prefix="finance-tests-"))

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from database import Base  # noqa: E402
from services import seed_default_categories  # noqa: E402


@pytest.fixture()
def session():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        seed_default_categories(session)
        yield session
    engine.dispose()
