from decimal import Decimal
from types import SimpleNamespace

import requests

from backend.services import notifications

from factories import make_product


def test_api_reseller_price_list(client, admin_headers):
    r = client.put("/v1/pricing/reseller", json={"prices": {"fgc": "21.5"}}, headers=admin_headers)
    assert r.status_code == 200, r.text

    body = client.get("/v1/pricing/reseller").json()

    assert Decimal(str(body["prices"]["FGC"])) == Decimal("21.5")
    assert Decimal(str(body["prices"]["FGP"])) == Decimal("85")
    assert list(body["overrides"]) == ["FGC"]


def test_api_zone_and_srp_prices(client, db_session, admin_headers, locations):
    make_product(db_session, "FGC-001", "Cafe Mocha Cup")
    make_product(db_session, "FGC-002", "Ube Cup")
    db_session.commit()

    zone = client.post("/v1/resellers/zones", json={"name": "Albay"}, headers=admin_headers).json()
    r = client.put(f"/v1/pricing/zones/{zone['id']}/fgc-001", json={"price": "19"}, headers=admin_headers)
    assert r.json()["sku_prefix"] == "FGC"

    missing = client.put("/v1/pricing/zones/999/FGC", json={"price": "19"}, headers=admin_headers)
    assert missing.status_code == 404

    negative = client.put("/v1/pricing/locations/SM Daet/srp/FGC-001", json={"price": "-1"}, headers=admin_headers)
    assert negative.status_code == 422

    r = client.put(
        "/v1/pricing/locations/SM Daet/categories", json={"prices": {"FGC": "35"}}, headers=admin_headers
    )
    assert r.json() == {"location": "SM Daet", "updated": 2}

    srps = client.get("/v1/locations/SM Daet/srp").json()
    assert {k: Decimal(str(v)) for k, v in srps.items()} == {"FGC-001": Decimal("35"), "FGC-002": Decimal("35")}


def _order(n_lines: int = 1):
    lines = [SimpleNamespace(sku=f"FGC-{i:03d}", description="Cafe Mocha Cup", quantity=10) for i in range(n_lines)]
    return SimpleNamespace(
        id=7,
        reseller_name="St. James Store",
        zone_name=None,
        total_amount=Decimal("1234.5"),
        lines=lines,
        address="Legazpi City",
        created_at=None,
    )


def test_reseller_embed_fields():
    embed = notifications.build_reseller_embed(_order())

    fields = {f["name"]: f["value"] for f in embed["fields"]}
    assert embed["title"] == "New reseller order #7"
    assert fields["Total"] == "₱1,234.50"
    assert fields["Zone"] == "-"
    assert fields["Items"] == "• FGC-000 Cafe Mocha Cup x10"
    assert fields["Address"] == "Legazpi City"


def test_items_field_is_capped():
    embed = notifications.build_reseller_embed(_order(n_lines=100))

    items = next(f["value"] for f in embed["fields"] if f["name"] == "Items")
    assert len(items) == 1024
    assert items.endswith("...")


def test_post_embed_without_url_is_skipped(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("no request expected")

    monkeypatch.setattr(notifications.requests, "post", fail)

    assert notifications.post_embed(None, {"title": "x"}) is False


def test_post_embed_swallows_http_errors(monkeypatch):
    calls = []

    def fake_post(url, json, timeout):
        calls.append((url, json, timeout))
        raise requests.ConnectionError("discord down")

    monkeypatch.setattr(notifications.requests, "post", fake_post)

    assert notifications.post_embed("https://discord.example/hook", {"title": "x"}) is False
    assert calls == [("https://discord.example/hook", {"embeds": [{"title": "x"}]}, notifications.TIMEOUT_S)]
