"""
Load demo data into the marketplace database.

    python -m marketplace.seed            # drop, recreate and seed
    DATABASE_URL=sqlite:///demo.db python -m marketplace.seed

``seed_if_empty()`` is used at app startup when ``SEED_ON_STARTUP`` is set.
"""

import argparse
import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from marketplace import database
from marketplace.core.logging import configure_logging
from marketplace.database import Contract, Job, Profile
from marketplace.domain.enums import ContractStatus, ProfileType

logger = logging.getLogger(__name__)

D = Decimal

PROFILES = [
    # key, first, last, profession, balance, type
    (1, "Ada", "Okafor", "Product Owner", D("1150.00"), ProfileType.CLIENT),
    (2, "Bruno", "Tanaka", "Retail Buyer", D("231.11"), ProfileType.CLIENT),
    (3, "Carla", "Mendes", "Architect", D("451.30"), ProfileType.CLIENT),
    (4, "Dmitri", "Holm", "Founder", D("1.30"), ProfileType.CLIENT),
    (5, "Esme", "Lindqvist", "Musician", D("64.00"), ProfileType.CONTRACTOR),
    (6, "Farid", "Nasser", "Programmer", D("1214.00"), ProfileType.CONTRACTOR),
    (7, "Greta", "Brandt", "Programmer", D("22.00"), ProfileType.CONTRACTOR),
    (8, "Hugo", "Ferreira", "Fighter", D("314.00"), ProfileType.CONTRACTOR),
]

CONTRACTS = [
    # key, terms, status, client key, contractor key
    (1, "Logo and brand guide", ContractStatus.TERMINATED, 1, 5),
    (2, "Checkout redesign", ContractStatus.IN_PROGRESS, 1, 6),
    (3, "Inventory service", ContractStatus.IN_PROGRESS, 2, 6),
    (4, "Event security", ContractStatus.IN_PROGRESS, 2, 7),
    (5, "Site survey", ContractStatus.NEW, 3, 8),
    (6, "Data migration", ContractStatus.IN_PROGRESS, 3, 7),
    (7, "Load testing", ContractStatus.IN_PROGRESS, 4, 7),
    (8, "Mobile prototype", ContractStatus.IN_PROGRESS, 4, 6),
    (9, "Jingle recording", ContractStatus.IN_PROGRESS, 4, 8),
]

JOBS = [
    # description, price, contract key, payment_date (None = unpaid)
    ("work", D("200.00"), 1, None),
    ("work", D("201.00"), 2, None),
    ("work", D("202.00"), 3, None),
    ("work", D("200.00"), 4, None),
    ("work", D("200.00"), 7, None),
    ("work", D("2020.00"), 7, datetime(2020, 8, 15, 19, 11, 26)),
    ("work", D("200.00"), 2, datetime(2020, 8, 15, 19, 11, 26)),
    ("work", D("200.00"), 3, datetime(2020, 8, 16, 19, 11, 26)),
    ("work", D("200.00"), 1, datetime(2020, 8, 17, 19, 11, 26)),
    ("work", D("200.00"), 5, datetime(2020, 8, 17, 19, 11, 26)),
    ("work", D("21.00"), 1, datetime(2020, 8, 10, 19, 11, 26)),
    ("work", D("21.00"), 2, datetime(2020, 8, 15, 19, 11, 26)),
    ("work", D("121.00"), 3, datetime(2020, 8, 15, 19, 11, 26)),
    ("work", D("121.00"), 3, datetime(2020, 8, 14, 23, 11, 26)),
]


def load_demo_data(session: Session) -> None:
    """Add the demo rows, letting the database assign every primary key.

    The numbers in ``PROFILES`` and ``CONTRACTS`` only link rows inside
    this data set.  On a fresh schema they match the generated ids.
    """
    profiles = {}
    for key, first, last, profession, balance, kind in PROFILES:
        profiles[key] = Profile(
            first_name=first, last_name=last, profession=profession,
            balance=balance, type=kind.value,
        )
        session.add(profiles[key])
    session.flush()

    contracts = {}
    for key, terms, status, client_key, contractor_key in CONTRACTS:
        contracts[key] = Contract(
            terms=terms, status=status.value,
            client=profiles[client_key], contractor=profiles[contractor_key],
        )
        session.add(contracts[key])
    session.flush()

    for description, price, contract_key, paid_at in JOBS:
        session.add(Job(
            description=description, price=price, contract=contracts[contract_key],
            paid=paid_at is not None, payment_date=paid_at,
        ))


def seed(reset: bool = True) -> None:
    """Recreate the schema (when ``reset``) and load the demo data."""
    if reset:
        database.drop_db()
    database.init_db()
    with database.SessionLocal.begin() as session:
        load_demo_data(session)
    logger.info(
        "Seeded %d profiles, %d contracts, %d jobs",
        len(PROFILES), len(CONTRACTS), len(JOBS),
    )


def seed_if_empty() -> bool:
    """Seed only when there are no profiles yet.  Returns True if seeded."""
    database.init_db()
    with database.SessionLocal() as session:
        count = session.scalar(select(func.count()).select_from(Profile))
    if count:
        logger.info("Database already has %d profiles, skipping seed.", count)
        return False
    seed(reset=False)
    return True


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Seed the marketplace database")
    parser.add_argument("--database-url", help="Override DATABASE_URL")
    parser.add_argument(
        "--keep", action="store_true",
        help="Only seed an empty database instead of dropping all tables",
    )
    args = parser.parse_args(argv)

    configure_logging()
    if args.database_url:
        database.configure_engine(args.database_url)
    if args.keep:
        seed_if_empty()
    else:
        seed(reset=True)


if __name__ == "__main__":
    main()
