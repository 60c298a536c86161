import json
import pytest
import stripe

from marketplace.catalog import repository as catalog_repository
from marketplace.payments import service as payments_service
from marketplace.payments.errors import (
    AuthorizationError,
    NotPurchasableError,
    PersistenceError,
    UpstreamGatewayError,
    ValidationError,
)
from marketplace.settlement.strategies import DestinationCharge, SeparateChargesAndTransfers

ORIGIN = "https://shop.example.com"


def _body(**overrides):
    body = {"siteKey": "shop1", "items": [{"id": "p1", "qty": 2}], "lang": "en"}
    body.update(overrides)
    return json.dumps(body).encode()


def _create(settings, body=None, origin=ORIGIN, strategy=None):
    return payments_service.create_checkout_session(
        body if body is not None else _body(),
        origin=origin,
        settings=settings,
        strategy=strategy or SeparateChargesAndTransfers(),
    )


def test_scenario_a_quote_without_shipping_configuration(settings, checkout_env):
    result = _create(settings)

    assert result == {"url": "https://checkout.stripe.test/pay/cs_test_1"}
    pending = checkout_env.pending[0]
    assert pending["session_id"] == "cs_test_1"
    assert pending["status"] == "pending"
    assert pending["subtotal"] == 1000
    assert pending["shipping_fee"] == 0
    assert pending["application_fee"] == 70
    assert pending["grand_total"] == 1000
    assert pending["items"] == [{"id": "p1", "name": "Apple", "quantity": 2, "unit_amount": 500, "line_total": 1000}]
    assert pending["lang"] == "en"
    assert pending["locale"] == "en-GB"
    assert pending["currency"] == "jpy"
    assert pending["settlement_style"] == "separate_charges_and_transfers"
    assert pending["transfer_group"].startswith("grp_shop1_")
    assert pending["seller_connect_id"] == "acct_123"
    assert pending["free_shipping"] == {"enabled": False, "threshold": 0, "applied": False}


def test_session_parameters(settings, checkout_env):
    _create(settings)
    params = checkout_env.sessions[0]["params"]

    assert params["mode"] == "payment"
    assert params["locale"] == "en-GB"
    assert params["client_reference_id"] == "shop1"
    assert params["customer_creation"] == "always"
    assert params["billing_address_collection"] == "required"
    assert params["phone_number_collection"] == {"enabled": True}
    assert params["shipping_address_collection"] == {"allowed_countries": ["JP"]}
    assert params["allow_promotion_codes"] is True
    assert params["payment_intent_data"] == {"transfer_group": checkout_env.pending[0]["transfer_group"]}
    assert params["success_url"] == f"{ORIGIN}/cart?session_id={{CHECKOUT_SESSION_ID}}&status=success"
    assert params["cancel_url"] == f"{ORIGIN}/cart"

    (line,) = params["line_items"]
    assert line["quantity"] == 2
    assert line["price_data"]["currency"] == "jpy"
    assert line["price_data"]["unit_amount"] == 500
    product = line["price_data"]["product_data"]
    assert product["name"] == "Apple"
    assert product["metadata"]["product_id"] == "p1"
    assert product["metadata"]["name_ja"] == "りんご"
    assert product["metadata"]["name_en"] == "Apple"

    meta = params["metadata"]
    assert meta["site_key"] == "shop1"
    assert meta["fee_rate"] == "0.07"
    assert meta["grand_total"] == "1000"
    assert json.loads(meta["items"])[0]["id"] == "p1"
    assert checkout_env.sessions[0]["idempotency_key"] is None


def test_shipping_line_appended_when_fee_not_zero(settings, checkout_env):
    checkout_env.prices = {"site_key": "shop1", "prices": {"en": 800, "ja": 600}}
    checkout_env.policy = {"site_key": "shop1", "enabled": True, "threshold_by_lang": {"en": 5000}}

    _create(settings)
    params = checkout_env.sessions[0]["params"]
    shipping_line = params["line_items"][-1]
    assert shipping_line["price_data"]["product_data"]["name"] == "Shipping"
    assert shipping_line["price_data"]["unit_amount"] == 800
    pending = checkout_env.pending[0]
    assert pending["shipping_fee"] == 800
    assert pending["grand_total"] == 1800
    # la commission ne porte que sur le sous-total
    assert pending["application_fee"] == 70
    assert pending["free_shipping"] == {"enabled": True, "threshold": 5000, "applied": False}


def test_scenario_b_explicit_zero_price_no_shipping_line(settings, checkout_env):
    checkout_env.prices = {"site_key": "shop1", "prices": {"en": 0, "ja": 800}}
    checkout_env.policy = {"site_key": "shop1", "enabled": True, "threshold_by_lang": {"en": 3000}}

    _create(settings)
    params = checkout_env.sessions[0]["params"]
    assert len(params["line_items"]) == 1
    assert checkout_env.pending[0]["shipping_fee"] == 0
    assert checkout_env.pending[0]["free_shipping"]["applied"] is False


def test_free_shipping_threshold_applied(settings, checkout_env):
    checkout_env.prices = {"site_key": "shop1", "prices": {"ja": 800}}
    checkout_env.policy = {"site_key": "default", "enabled": True, "default_threshold": 1000}

    _create(settings, _body(lang="ja"))
    pending = checkout_env.pending[0]
    assert pending["shipping_fee"] == 0
    assert pending["free_shipping"]["applied"] is True
    assert checkout_env.sessions[0]["params"]["metadata"]["free_shipping_applied"] == "true"


def test_two_identical_calls_give_two_sessions_and_two_pending_records(settings, checkout_env):
    first = _create(settings)
    second = _create(settings)
    assert first["url"] != second["url"]
    assert [p["session_id"] for p in checkout_env.pending] == ["cs_test_1", "cs_test_2"]
    assert checkout_env.pending[0]["transfer_group"] != checkout_env.pending[1]["transfer_group"]


def test_client_idempotency_key_is_forwarded(settings, checkout_env):
    _create(settings, _body(idempotencyKey="cart-42"))
    assert checkout_env.sessions[0]["idempotency_key"] == "checkout:shop1:cart-42"
    assert checkout_env.pending[0]["idempotency_key"] == "checkout:shop1:cart-42"


def test_failed_product_read_opens_no_session(settings, checkout_env, monkeypatch):
    def _fail(site_key, ids, chunk_size=10):
        raise catalog_repository.CatalogReadError("timeout")
    monkeypatch.setattr("marketplace.catalog.repository.fetch_products_chunked", _fail)

    with pytest.raises(PersistenceError) as exc:
        _create(settings, _body(items=[{"id": f"x{i}"} for i in range(11)] + [{"id": "p1"}]))
    assert exc.value.status_code == 500
    assert checkout_env.sessions == []
    assert checkout_env.pending == []


def test_idempotent_replay_sends_identical_parameters(settings, checkout_env):
    _create(settings, _body(idempotencyKey="cart-42"))
    _create(settings, _body(idempotencyKey="cart-42"))
    first, second = checkout_env.sessions
    assert first["params"] == second["params"]
    assert first["idempotency_key"] == second["idempotency_key"] == "checkout:shop1:cart-42"
    assert first["params"]["payment_intent_data"]["transfer_group"].startswith("grp_shop1_k")


def test_other_idempotency_key_gets_other_transfer_group(settings, checkout_env):
    _create(settings, _body(idempotencyKey="cart-42"))
    _create(settings, _body(idempotencyKey="cart-43"))
    groups = [s["params"]["metadata"]["transfer_group"] for s in checkout_env.sessions]
    assert groups[0] != groups[1]


def test_legacy_tagged_translation_is_used(settings, checkout_env):
    checkout_env.products["p2"]["t"] = [{"lang": "kr", "title": "귤"}]
    _create(settings, _body(lang="ko", items=[{"id": "p2"}]))
    assert checkout_env.pending[0]["items"][0]["name"] == "귤"


def test_products_loaded_in_chunks(settings, checkout_env):
    items = [{"id": f"x{i}"} for i in range(12)] + [{"id": "p1", "qty": 1}]
    _create(settings, _body(items=items))
    (call,) = checkout_env.chunk_calls
    assert call[0] == "shop1"
    assert call[2] == settings.product_chunk_size
    assert len(call[1]) == 13


def test_duplicate_items_are_aggregated(settings, checkout_env):
    _create(settings, _body(items=[{"id": "p1", "qty": 1}, {"id": "p2", "quantity": 2}, {"id": "p1", "qty": 2}]))
    pending = checkout_env.pending[0]
    assert [(i["id"], i["quantity"]) for i in pending["items"]] == [("p1", 3), ("p2", 2)]
    assert pending["subtotal"] == 500 * 3 + 300 * 2


def test_quantity_is_clamped(settings, checkout_env):
    _create(settings, _body(items=[{"id": "p1", "qty": 5000}, {"id": "p2", "qty": -3}]))
    items = checkout_env.pending[0]["items"]
    assert [i["quantity"] for i in items] == [999, 1]


def test_source_language_and_default_language(settings, checkout_env):
    _create(settings, _body(lang=None))
    pending = checkout_env.pending[0]
    assert pending["lang"] == "ja"
    assert pending["locale"] == "ja"
    assert pending["items"][0]["name"] == "りんご"


def test_legacy_language_alias(settings, checkout_env):
    _create(settings, _body(lang="jp"))
    assert checkout_env.pending[0]["lang"] == "ja"


def test_destination_charge_strategy(settings, checkout_env):
    _create(settings, strategy=DestinationCharge())
    params = checkout_env.sessions[0]["params"]
    pid = params["payment_intent_data"]
    assert pid["application_fee_amount"] == 60
    assert pid["transfer_data"] == {"destination": "acct_123"}
    assert params["metadata"]["settlement_style"] == "destination_charge"
    assert checkout_env.pending[0]["fee_rate"] == 0.06


def test_destination_charge_requires_onboarding(settings, checkout_env):
    checkout_env.merchant["onboarding_completed"] = False
    with pytest.raises(AuthorizationError) as exc:
        _create(settings, strategy=DestinationCharge())
    assert exc.value.status_code == 400
    assert exc.value.reason == "connect_onboarding_incomplete"
    assert checkout_env.sessions == []


def test_forbidden_origin(settings, checkout_env):
    with pytest.raises(AuthorizationError) as exc:
        _create(settings, origin="https://evil.example.com")
    assert exc.value.status_code == 403
    assert exc.value.reason == "forbidden_origin"


def test_no_origin_header_is_allowed_and_uses_public_origin(settings, checkout_env):
    _create(settings, origin=None)
    assert checkout_env.sessions[0]["params"]["cancel_url"] == "https://public.example.com/cart"


def test_allowed_body_origin_wins_for_redirects(settings, checkout_env):
    _create(settings, _body(origin="https://store.pageit.jp"))
    assert checkout_env.sessions[0]["params"]["cancel_url"] == "https://store.pageit.jp/cart"


def test_disallowed_body_origin_is_ignored(settings, checkout_env):
    _create(settings, _body(origin="https://evil.example.com"))
    assert checkout_env.sessions[0]["params"]["cancel_url"] == f"{ORIGIN}/cart"


def test_invalid_json(settings, checkout_env):
    with pytest.raises(ValidationError) as exc:
        _create(settings, b"{not json")
    assert exc.value.reason == "invalid_json"
    assert exc.value.status_code == 400


@pytest.mark.parametrize("body", [
    b"[]",
    json.dumps({"siteKey": "shop1", "items": []}).encode(),
    json.dumps({"items": [{"id": "p1"}]}).encode(),
])
def test_bad_request(settings, checkout_env, body):
    with pytest.raises(ValidationError) as exc:
        _create(settings, body)
    assert exc.value.reason == "bad_request"


def test_sales_suspended(settings, checkout_env):
    checkout_env.merchant["ec_stop"] = True
    with pytest.raises(AuthorizationError) as exc:
        _create(settings)
    assert exc.value.status_code == 403
    assert exc.value.reason == "ec_stopped"


@pytest.mark.parametrize("connect_id", [None, "", "cus_123"])
def test_connect_account_missing(settings, checkout_env, connect_id):
    checkout_env.merchant["stripe_connect_account_id"] = connect_id
    with pytest.raises(AuthorizationError) as exc:
        _create(settings)
    assert exc.value.status_code == 400
    assert exc.value.reason == "connect_account_missing"


def test_unknown_merchant(settings, checkout_env):
    checkout_env.merchant = None
    with pytest.raises(AuthorizationError) as exc:
        _create(settings)
    assert exc.value.reason == "connect_account_missing"


def test_nothing_purchasable(settings, checkout_env):
    with pytest.raises(NotPurchasableError) as exc:
        _create(settings, _body(items=[{"id": "free"}, {"id": "ghost"}]))
    assert exc.value.reason == "no_purchasable_items"
    assert checkout_env.sessions == []
    assert checkout_env.pending == []


def test_gateway_error(settings, checkout_env):
    checkout_env.stripe_error = stripe.InvalidRequestError("No such destination: acct_123", param="transfer_data")
    with pytest.raises(UpstreamGatewayError) as exc:
        _create(settings)
    assert exc.value.status_code == 500
    assert "No such destination" in exc.value.message
    assert checkout_env.pending == []


def test_pending_write_failure(settings, checkout_env, caplog):
    checkout_env.pending_ok = False
    with pytest.raises(PersistenceError) as exc:
        _create(settings)
    assert exc.value.status_code == 500
    assert "cs_test_1" in caplog.text


def test_redirect_base_fallbacks(settings):
    assert payments_service.redirect_base(None, None, settings) == "https://public.example.com"
    assert payments_service.redirect_base("", "https://shop.example.com/", settings) == "https://shop.example.com"
