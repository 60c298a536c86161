import os

os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from types import SimpleNamespace
from typing import Generator
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from marketplace.app_setup.factory import create_app
from marketplace.catalog.models import MerchantAccount
from marketplace.config import CheckoutSettings

SHOP_ORIGIN = "https://shop.example.com"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def settings() -> CheckoutSettings:
    return CheckoutSettings(
        allowed_origin_patterns=(r"^https://shop\.example\.com$", r"^https://.+\.pageit\.jp$"),
        allow_dev_origins=True,
        public_origin="https://public.example.com",
    )

@pytest.fixture(scope="session")
def app(settings):
    return create_app(settings)

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

# Aucun accès réseau à Supabase pendant les tests
@pytest.fixture(scope="function", autouse=True)
def mock_supabase(monkeypatch):
    fake = MagicMock()
    monkeypatch.setattr("marketplace.infra.supabase_client.get_service_supabase", lambda: fake)
    return fake

@pytest.fixture
def checkout_env(monkeypatch):
    """
    Collaborateurs du checkout remplacés par des fakes en mémoire:
    vendeur, produits, tables d'expédition, Stripe et pending_orders.
    """
    env = SimpleNamespace(
        merchant={
            "site_key": "shop1",
            "stripe_connect_account_id": "acct_123",
            "onboarding_completed": True,
            "ec_stop": False,
        },
        products={
            "p1": {"id": "p1", "site_key": "shop1", "base": {"title": "りんご"}, "t": [{"lang": "en", "title": "Apple"}], "price_incl": 500},
            "p2": {"id": "p2", "site_key": "shop1", "base": {"title": "みかん"}, "t": [], "price_incl": 300},
            "free": {"id": "free", "site_key": "shop1", "base": {"title": "無料"}, "price_incl": 0},
        },
        prices=None,
        policy=None,
        sessions=[],
        pending=[],
        pending_ok=True,
        chunk_calls=[],
        stripe_error=None,
    )

    def _get_merchant(site_key):
        return MerchantAccount.from_row(env.merchant) if env.merchant is not None else None

    def _fetch_products(site_key, ids, chunk_size=10):
        ids = list(ids)
        env.chunk_calls.append((site_key, ids, chunk_size))
        return {i: env.products[i] for i in ids if i in env.products}

    def _create_session(params, idempotency_key=None):
        if env.stripe_error is not None:
            raise env.stripe_error
        n = len(env.sessions) + 1
        env.sessions.append({"params": params, "idempotency_key": idempotency_key})
        return {"id": f"cs_test_{n}", "url": f"https://checkout.stripe.test/pay/cs_test_{n}"}

    def _save_pending(row):
        env.pending.append(row)
        return env.pending_ok

    monkeypatch.setattr("marketplace.catalog.repository.get_merchant", _get_merchant)
    monkeypatch.setattr("marketplace.catalog.repository.fetch_products_chunked", _fetch_products)
    monkeypatch.setattr("marketplace.shipping.repository.load_prices", lambda site_key: env.prices)
    monkeypatch.setattr("marketplace.shipping.repository.load_policy", lambda site_key: env.policy)
    monkeypatch.setattr("marketplace.payments.stripe_client.create_session", _create_session)
    monkeypatch.setattr("marketplace.payments.repository.save_pending_order", _save_pending)
    return env
