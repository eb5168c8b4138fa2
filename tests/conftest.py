import os

# point the app at a throwaway database before anything imports the engine
os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
os.environ["ENV"] = "test"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, create_engine

from marketplace.database import build_engine, create_db_and_tables, get_session
from marketplace.main import app
from marketplace.services.payment_gateway import get_payment_gateway
from marketplace.services.sms_service import get_notifier


class FakeNotifier:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def send(self, phone, template, variables):
        if self.fail:
            raise RuntimeError("sms provider down")
        self.sent.append((phone, template, dict(variables)))
        return True

    def templates(self):
        return [template.value for _, template, _ in self.sent]


class FakeGateway:
    key_id = "rzp_test_key"

    def __init__(self):
        self.orders = []
        self.refunds = []

    def create_order(self, amount, receipt):
        order = {
            "id": f"order_{receipt}",
            "amount": int(round(amount * 100)),
            "currency": "INR",
            "receipt": receipt,
        }
        self.orders.append(order)
        return order

    def verify_signature(self, gateway_order_id, payment_id, signature):
        return signature == "valid-signature"

    def refund(self, payment_id, amount, receipt):
        refund = {"id": f"rfnd_{len(self.refunds) + 1}", "payment_id": payment_id, "amount": amount}
        self.refunds.append(refund)
        return refund


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'marketplace.db'}")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def db(engine):
    # statement-level autocommit: the test never sits on a lock while the app writes
    db_engine = create_engine(
        str(engine.url),
        connect_args={"check_same_thread": False, "timeout": 30},
        isolation_level="AUTOCOMMIT",
    )
    with Session(db_engine) as session:
        yield session
    db_engine.dispose()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(engine, notifier, gateway):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    yield TestClient(app)

    app.dependency_overrides.clear()
