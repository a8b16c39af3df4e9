"""
Relational store for the Contractor Marketplace.
Holds profiles (balance-bearing accounts), contracts and jobs.

Balances and job payment flags are guarded with SQLAlchemy's optimistic
versioning (``version_id_col``): every UPDATE carries the version that was
read, and a concurrent writer turns the flush into a ``StaleDataError``.
``run_in_transaction`` rolls such a transaction back and re-runs the whole
operation.
"""

import logging
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional, TypeVar

from sqlalchemy import (
    create_engine, Column, Integer, String, Boolean, DateTime, Text,
    Numeric, Index, ForeignKey, CheckConstraint, event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import StaticPool

from marketplace import config
from marketplace.domain.enums import ContractStatus, ProfileType
from marketplace.exceptions import TransientError
from marketplace.metrics import record_error, record_tx_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Monetary amount, two fractional digits
Money = Numeric(12, 2)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Engine / session factory
# ---------------------------------------------------------------------------

def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute(f"PRAGMA busy_timeout={int(config.SQLITE_BUSY_TIMEOUT_MS)}")
    cursor.close()


def _build_engine(url: str) -> Engine:
    kwargs = {"echo": config.DB_ECHO}
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        # An in-memory database only exists on its one connection
        if url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url:
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["isolation_level"] = "SERIALIZABLE"
        kwargs["pool_pre_ping"] = True

    new_engine = create_engine(url, **kwargs)
    if is_sqlite:
        event.listen(new_engine, "connect", _set_sqlite_pragma)
    return new_engine


engine = _build_engine(config.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
Base = declarative_base()


def configure_engine(url: str) -> Engine:
    """Point the session factory at a different database.

    Used by tests and the seed script.  The previous engine is disposed.
    """
    global engine
    old = engine
    engine = _build_engine(url)
    SessionLocal.configure(bind=engine)
    old.dispose()
    logger.info("Database engine bound to %s", engine.url.render_as_string(hide_password=True))
    return engine


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class Profile(Base):
    """A client or contractor account holding a balance."""
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(64), nullable=False)
    last_name = Column(String(64), nullable=False)
    profession = Column(String(128), nullable=False)
    balance = Column(Money, nullable=False, default=Decimal("0.00"))
    type = Column(String(16), nullable=False)  # client / contractor
    version_id = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_profiles_balance_non_negative"),
        CheckConstraint(
            "type IN ('%s', '%s')" % (ProfileType.CLIENT.value, ProfileType.CONTRACTOR.value),
            name="ck_profiles_type",
        ),
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Contract(Base):
    """Agreement between one client profile and one contractor profile."""
    __tablename__ = "contracts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    terms = Column(Text, nullable=False)
    status = Column(String(16), nullable=False, default=ContractStatus.NEW.value)
    client_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    contractor_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    client = relationship("Profile", foreign_keys=[client_id])
    contractor = relationship("Profile", foreign_keys=[contractor_id])
    jobs = relationship("Job", back_populates="contract")

    __table_args__ = (
        CheckConstraint("client_id <> contractor_id", name="ck_contracts_distinct_parties"),
        CheckConstraint(
            "status IN ('%s')" % "', '".join(s.value for s in ContractStatus),
            name="ck_contracts_status",
        ),
    )


class Job(Base):
    """Billable unit of work under a contract, paid at most once."""
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    description = Column(Text, nullable=False)
    price = Column(Money, nullable=False)
    paid = Column(Boolean, nullable=False, default=False)
    payment_date = Column(DateTime, nullable=True)
    contract_id = Column(Integer, ForeignKey("contracts.id"), nullable=False)
    version_id = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    contract = relationship("Contract", back_populates="jobs")

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_jobs_price_positive"),
        CheckConstraint(
            "(NOT paid AND payment_date IS NULL) OR (paid AND payment_date IS NOT NULL)",
            name="ck_jobs_paid_has_date",
        ),
        Index("ix_jobs_contract_paid", "contract_id", "paid"),
        Index("ix_jobs_payment_date", "payment_date"),
    )
    __mapper_args__ = {"version_id_col": version_id}


# ---------------------------------------------------------------------------
# Database initialization
# ---------------------------------------------------------------------------

def init_db():
    """Create all tables if they don't exist."""
    Base.metadata.create_all(bind=engine)


def drop_db():
    """Drop every table.  Only the seed script calls this."""
    Base.metadata.drop_all(bind=engine)


def get_db() -> Session:
    """Get a database session for reads. Caller must close it."""
    return SessionLocal()


# ---------------------------------------------------------------------------
# Scoped transactions
# ---------------------------------------------------------------------------

_CONFLICT_SQLSTATES = {"40001", "40P01"}  # serialization_failure, deadlock_detected


def is_write_conflict(exc: BaseException) -> bool:
    """True when ``exc`` means another transaction won a race for the same rows."""
    if isinstance(exc, StaleDataError):
        return True
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _CONFLICT_SQLSTATES:
        return True
    message = str(orig).lower()
    return "database is locked" in message or "deadlock" in message


def run_in_transaction(
    operation: Callable[[Session], T],
    *,
    name: str = "transaction",
    max_attempts: Optional[int] = None,
) -> T:
    """Run ``operation(session)`` inside a single atomic transaction.

    The transaction commits when ``operation`` returns and rolls back when it
    raises, on every path.  Business errors (``MarketplaceError``) propagate
    unchanged after the rollback.  Write conflicts are retried as a whole,
    with exponential backoff, up to ``max_attempts`` times.  Any other store
    failure, or a conflict that outlives the retries, becomes
    ``TransientError``.
    """
    attempts = max_attempts or config.TX_MAX_ATTEMPTS
    delay = config.TX_RETRY_INITIAL_SECONDS
    attempt = 0

    while True:
        attempt += 1
        try:
            with SessionLocal.begin() as session:
                return operation(session)
        except SQLAlchemyError as exc:
            if is_write_conflict(exc) and attempt < attempts:
                logger.warning(
                    "%s: write conflict on attempt %d/%d, retrying in %.2fs (%s)",
                    name, attempt, attempts, delay, exc.__class__.__name__,
                )
                record_tx_retry()
                time.sleep(delay)
                delay = min(delay * 2, config.TX_RETRY_MAX_SECONDS)
                continue
            logger.error("%s failed after %d attempt(s): %s", name, attempt, exc)
            record_error()
            raise TransientError(f"{name} failed", cause=exc) from exc
