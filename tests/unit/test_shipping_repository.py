from unittest.mock import MagicMock

from marketplace.shipping import repository as shipping_repository


def test_site_document_is_used_even_if_empty(monkeypatch):
    seen = []

    def _fetch(table, site_key):
        seen.append(site_key)
        return {"site_key": "shop1", "prices": {}}

    monkeypatch.setattr(shipping_repository, "_fetch_row", _fetch)
    assert shipping_repository.load_prices("shop1") == {"site_key": "shop1", "prices": {}}
    assert seen == ["shop1"]


def test_default_document_when_site_missing(monkeypatch):
    rows = {"default": {"site_key": "default", "prices": {"ja": 800}}}
    monkeypatch.setattr(shipping_repository, "_fetch_row", lambda table, site_key: rows.get(site_key))
    assert shipping_repository.load_policy("shop1") == rows["default"]


def test_none_when_neither_exists(monkeypatch):
    monkeypatch.setattr(shipping_repository, "_fetch_row", lambda table, site_key: None)
    assert shipping_repository.load_site_or_default("site_shipping_prices", "shop1") is None


def test_fetch_row_queries_by_site_key(monkeypatch):
    client = MagicMock()
    chain = client.table.return_value.select.return_value
    chain.eq.return_value = chain
    chain.limit.return_value = chain
    chain.execute.return_value = MagicMock(data=[{"site_key": "shop1", "prices": {"en": 0}}])
    monkeypatch.setattr("marketplace.infra.supabase_client.get_service_supabase", lambda: client)

    assert shipping_repository._fetch_row("site_shipping_prices", "shop1") == {"site_key": "shop1", "prices": {"en": 0}}
    client.table.assert_called_with("site_shipping_prices")
    chain.eq.assert_called_with("site_key", "shop1")
