import os

# settings are read at import time; tests never touch a real database or RPC
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from web3.exceptions import TransactionNotFound

# FORCE model registration
import fundbridge.models  # noqa

from fundbridge.core.config import Settings
from fundbridge.core.deps import get_chain_client
from fundbridge.core.errors import ConfigurationError
from fundbridge.db.base import Base
from fundbridge.db.session import get_db
from fundbridge.main import create_app
from fundbridge.models.contribution import Contribution
from fundbridge.models.enums import ContributionStatus, Currency, ProjectStatus
from fundbridge.models.goal import Goal
from fundbridge.models.project import Project
from fundbridge.services.transfer_matcher import TRANSFER_TOPIC

OWNER = "0x1111111111111111111111111111111111111111"
TOKEN = "0x2222222222222222222222222222222222222222"
RECIPIENT = "0x3333333333333333333333333333333333333333"
PAYER = "0x4444444444444444444444444444444444444444"
STRANGER = "0x5555555555555555555555555555555555555555"
DEST_TOKEN = "0x6666666666666666666666666666666666666666"

POLYGON = 137
AVALANCHE = 43114


def tx(n: int) -> str:
    return "0x" + format(n, "064x")


def _topic(addr: str) -> str:
    return "0x" + "0" * 24 + addr.lower()[2:]


def transfer_log(token: str, sender: str, to: str, value: int) -> dict:
    return {
        "address": token,
        "topics": [TRANSFER_TOPIC, _topic(sender), _topic(to)],
        "data": "0x" + format(value, "064x"),
    }


class FakeChain:
    """
    In-process stand-in for ChainClient. Receipts are registered per tx hash;
    unknown hashes behave like a node that has not seen the transaction.
    """

    def __init__(self):
        self.tokens = {
            (POLYGON, Currency.JPYC): TOKEN,
            (POLYGON, Currency.USDC): TOKEN,
            (AVALANCHE, Currency.JPYC): DEST_TOKEN,
        }
        self.decimals = {TOKEN.lower(): 18, DEST_TOKEN.lower(): 18}
        self.balances = {}
        self.receipts = {}
        self.calls = []

    def add_receipt(self, tx_hash: str, logs, status: int = 1, block_number: int = 100):
        self.receipts[tx_hash.lower()] = {
            "status": status,
            "blockNumber": block_number,
            "logs": list(logs),
        }

    def resolve_token_address(self, chain_id, currency):
        addr = self.tokens.get((chain_id, Currency(currency)))
        if not addr:
            raise ConfigurationError("TOKEN_NOT_CONFIGURED_ON_CHAIN")
        return addr

    def get_transaction(self, chain_id, tx_hash):
        self.calls.append(("get_transaction", chain_id, tx_hash))
        if tx_hash.lower() not in self.receipts:
            raise TransactionNotFound(f"Transaction with hash {tx_hash} not found.")
        return {"hash": tx_hash}

    def get_receipt(self, chain_id, tx_hash):
        self.calls.append(("get_receipt", chain_id, tx_hash))
        r = self.receipts.get(tx_hash.lower())
        if r is None:
            raise TransactionNotFound(f"Transaction with hash {tx_hash} not found.")
        return r

    def token_decimals(self, chain_id, token_address):
        return self.decimals[token_address.lower()]

    def balance_of(self, chain_id, token_address, owner):
        return self.balances.get((chain_id, token_address.lower(), owner.lower()), 0)


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def settings():
    return Settings(database_url="sqlite+pysqlite:///:memory:")


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(eng)
        eng.dispose()


@pytest.fixture(scope="function")
def db(engine):
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def create_project(db, *, status=ProjectStatus.DRAFT, owner=OWNER, **kw):
    kw.setdefault("funding_chain_id", POLYGON)
    kw.setdefault("settlement_chain_id", AVALANCHE)
    kw.setdefault("settlement_recipient_address", RECIPIENT)
    kw.setdefault("settlement_token_address", DEST_TOKEN)
    p = Project(
        title="Test Project",
        owner_address=owner,
        status=ProjectStatus(status).value,
        **kw,
    )
    db.add(p)
    db.commit()
    return p


def create_goal(db, project, *, target=1000, achieved=False, currency=Currency.JPYC):
    g = Goal(
        project_id=project.id,
        target_amount=target,
        currency=Currency(currency).value,
        achieved_at=datetime.now(timezone.utc) if achieved else None,
    )
    db.add(g)
    db.commit()
    return g


_seq = {"n": 10_000}


def add_contribution(
    db,
    project,
    amount,
    *,
    status=ContributionStatus.CONFIRMED,
    currency=Currency.JPYC,
    chain_id=POLYGON,
    purpose_id=None,
):
    """Ledger row written directly, bypassing chain verification."""
    _seq["n"] += 1
    c = Contribution(
        project_id=project.id,
        purpose_id=purpose_id,
        chain_id=chain_id,
        currency=Currency(currency).value,
        tx_hash=tx(_seq["n"]),
        from_address=PAYER,
        to_address=RECIPIENT,
        amount_decimal=str(amount),
        amount_raw="0",
        decimals=18,
        status=ContributionStatus(status).value,
    )
    db.add(c)
    db.commit()
    return c


def _app_for(engine, chain):
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app = create_app()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_chain_client] = lambda: chain
    return app


@pytest.fixture
def client(engine, chain):
    with TestClient(_app_for(engine, chain)) as c:
        yield c


@pytest.fixture
def file_engine(tmp_path):
    """On-disk database: each session gets its own connection, so writers can interleave."""
    eng = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'fundbridge.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(eng)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture
def file_client(file_engine, chain):
    with TestClient(_app_for(file_engine, chain)) as c:
        yield c

