"""
Pytest configuration and shared fixtures.

Fixtures available to all tests:
  - store          -- a fresh file-backed SQLite database bound to the app
  - factory        -- helpers that insert profiles / contracts / jobs
  - seeded_store   -- ``store`` loaded with the demo data from marketplace.seed
  - api            -- FastAPI TestClient over ``seeded_store``
"""

from __future__ import annotations

import os
import sys
from datetime import datetime
from decimal import Decimal
from typing import Optional

import pytest

# Ensure the project root is on the path so all marketplace imports resolve.
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

os.environ.setdefault("DATABASE_URL", "sqlite://")

from marketplace import config, database  # noqa: E402
from marketplace.database import Contract, Job, Profile  # noqa: E402
from marketplace.metrics import reset_metrics_for_tests  # noqa: E402


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

@pytest.fixture
def store(tmp_path, monkeypatch):
    """Bind the app to a temporary SQLite file.

    File-backed so that concurrent threads get their own connections.
    """
    monkeypatch.setattr(config, "TX_RETRY_INITIAL_SECONDS", 0.01)
    monkeypatch.setattr(config, "TX_RETRY_MAX_SECONDS", 0.05)
    database.configure_engine(f"sqlite:///{tmp_path / 'marketplace.db'}")
    database.init_db()
    reset_metrics_for_tests()
    yield database
    database.engine.dispose()


class _Factory:
    """Small row builders; each call commits its own transaction."""

    def profile(
        self,
        balance: str = "0",
        type: str = "client",
        profession: str = "Programmer",
        first_name: str = "Test",
        last_name: Optional[str] = None,
    ) -> int:
        with database.SessionLocal.begin() as s:
            p = Profile(
                first_name=first_name,
                last_name=last_name or type.title(),
                profession=profession,
                balance=Decimal(balance),
                type=type,
            )
            s.add(p)
            s.flush()
            return p.id

    def contract(self, client_id: int, contractor_id: int, status: str = "in_progress") -> int:
        with database.SessionLocal.begin() as s:
            c = Contract(
                terms="terms", status=status,
                client_id=client_id, contractor_id=contractor_id,
            )
            s.add(c)
            s.flush()
            return c.id

    def job(self, contract_id: int, price: str, paid_at: Optional[datetime] = None) -> int:
        with database.SessionLocal.begin() as s:
            j = Job(
                description="work", price=Decimal(price), contract_id=contract_id,
                paid=paid_at is not None, payment_date=paid_at,
            )
            s.add(j)
            s.flush()
            return j.id

    def balance(self, profile_id: int) -> Decimal:
        with database.SessionLocal() as s:
            return s.get(Profile, profile_id).balance

    def get_job(self, job_id: int) -> Job:
        with database.SessionLocal() as s:
            return s.get(Job, job_id)

    def total_balance(self) -> Decimal:
        with database.SessionLocal() as s:
            return sum((p.balance for p in s.query(Profile).all()), Decimal("0"))


@pytest.fixture
def factory(store):
    return _Factory()


@pytest.fixture
def seeded_store(store):
    from marketplace.seed import load_demo_data

    with database.SessionLocal.begin() as s:
        load_demo_data(s)
    return store


@pytest.fixture
def api(seeded_store):
    from fastapi.testclient import TestClient
    from marketplace.app import app

    with TestClient(app) as client:
        yield client
