import pytest

from backend.app.db.models.models_v1 import StockMovement
from backend.app.db.models.core_types import MovementType
from backend.services import catalog
from backend.services.catalog import SkuData
from backend.services.errors import Conflict, InvalidInput, NotFound
from backend.services.inventory import apply_delta

from factories import qty


def test_add_sku_rejects_existing_code(db_session, locations):
    # ---------- ARRANGE ----------
    catalog.add_sku(db_session, SkuData(sku="FGC-001", description="Cafe Mocha Cup"))
    db_session.commit()

    # ---------- ACT / ASSERT ----------
    with pytest.raises(Conflict):
        catalog.add_sku(db_session, SkuData(sku="fgc-001", description="Another"))


def test_added_sku_appears_in_listing_without_stock(db_session, locations):
    catalog.add_sku(db_session, SkuData(sku="FGP-009", description="Ube Pint"))
    db_session.commit()

    skus = [p.sku for p in catalog.list_products(db_session)]
    assert "FGP-009" in skus

    p = catalog.get_product(db_session, "FGP-009")
    assert qty(db_session, p, locations["FTF Manufacturing"]) == 0


def test_add_sku_with_unknown_location_is_rejected(db_session, locations):
    with pytest.raises(InvalidInput):
        catalog.add_sku(db_session, SkuData(sku="FGC-010", description="X", locations=["Nowhere"]))


def test_rename_to_existing_code_rejected_and_fresh_code_accepted(db_session, locations):
    # ---------- ARRANGE ----------
    ftf = locations["FTF Manufacturing"]
    a = catalog.add_sku(db_session, SkuData(sku="FGC-001", description="Cafe Mocha Cup"))
    catalog.add_sku(db_session, SkuData(sku="FGC-002", description="Mango Cup"))
    apply_delta(
        db_session,
        product=a,
        location=ftf,
        delta=7,
        movement_type=MovementType.adjustment,
        idempotency_key="seed-a",
    )
    db_session.commit()

    # ---------- ACT / ASSERT : clash ----------
    with pytest.raises(Conflict):
        catalog.update_sku(db_session, "FGC-001", SkuData(sku="FGC-002", description="Cafe Mocha Cup"))
    db_session.rollback()

    # ---------- ACT : fresh code ----------
    renamed = catalog.update_sku(db_session, "FGC-001", SkuData(sku="FGC-101", description="Cafe Mocha Cup"))
    db_session.commit()

    # ---------- ASSERT ----------
    assert renamed.id == a.id
    assert catalog.find_product(db_session, "FGC-001") is None
    assert qty(db_session, renamed, ftf) == 7


def test_update_unknown_sku_is_not_found(db_session):
    with pytest.raises(NotFound):
        catalog.update_sku(db_session, "NOPE-1", SkuData(sku="NOPE-1", description="x"))


def test_delete_sku_is_gone_but_ledger_keeps_snapshot(db_session, locations):
    # ---------- ARRANGE ----------
    p = catalog.add_sku(db_session, SkuData(sku="FGT-001", description="Cafe Mocha Tray"))
    apply_delta(
        db_session,
        product=p,
        location=locations["SM Daet"],
        delta=3,
        movement_type=MovementType.adjustment,
        idempotency_key="seed-tray",
    )
    db_session.commit()

    # ---------- ACT ----------
    catalog.delete_sku(db_session, "FGT-001")
    db_session.commit()

    # ---------- ASSERT ----------
    assert "FGT-001" not in [x.sku for x in catalog.list_products(db_session)]
    with pytest.raises(NotFound):
        catalog.get_product(db_session, "FGT-001")

    mv = db_session.query(StockMovement).filter_by(idempotency_key="seed-tray").one()
    assert mv.product_id is None
    assert mv.sku == "FGT-001"


def test_visibility_subset_and_empty_means_everywhere(db_session, locations):
    catalog.add_sku(db_session, SkuData(sku="FGL-001", description="Cafe Mocha Liter"))
    catalog.add_sku(
        db_session,
        SkuData(sku="FGL-002", description="Mango Liter", locations=["SM Daet", "sm legazpi"]),
    )
    db_session.commit()

    at_daet = [p.sku for p in catalog.list_products(db_session, location="SM Daet")]
    at_sorsogon = [p.sku for p in catalog.list_products(db_session, location="SM Sorsogon")]

    assert at_daet == ["FGL-001", "FGL-002"]
    assert at_sorsogon == ["FGL-001"]

    catalog.set_visibility(db_session, "FGL-002", [])
    db_session.commit()
    assert [p.sku for p in catalog.list_products(db_session, location="SM Sorsogon")] == ["FGL-001", "FGL-002"]


def test_reseller_only_listing(db_session, locations):
    catalog.add_sku(db_session, SkuData(sku="FGC-001", description="Cup"))
    catalog.add_sku(db_session, SkuData(sku="RAW-001", description="Sugar", reseller_visible=False))
    db_session.commit()

    assert [p.sku for p in catalog.list_products(db_session, reseller_only=True)] == ["FGC-001"]

    catalog.set_reseller_visibility(db_session, "RAW-001", True)
    db_session.commit()
    assert len(catalog.list_products(db_session, reseller_only=True)) == 2


# ---------- API ----------
def test_api_product_crud(client, locations, admin_headers):
    r = client.post(
        "/v1/products",
        json={"sku": "fgg-001", "description": "Cafe Mocha Gallon", "locations": ["SM Daet"]},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    assert r.json()["sku"] == "FGG-001"
    assert r.json()["locations"] == ["SM Daet"]

    r = client.post("/v1/products", json={"sku": "FGG-001", "description": "dup"}, headers=admin_headers)
    assert r.status_code == 409
    assert r.json() == {"detail": "SKU already exists"}

    r = client.put(
        "/v1/products/FGG-001",
        json={"sku": "FGG-101", "description": "Cafe Mocha Gallon", "uom": "L"},
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text
    assert r.json()["uom"] == "L"
    # locations omitted on update: left as they were
    assert r.json()["locations"] == ["SM Daet"]

    assert client.get("/v1/products/FGG-001").status_code == 404

    r = client.delete("/v1/products/FGG-101", headers=admin_headers)
    assert r.status_code == 204
    assert client.get("/v1/products").json() == []


def test_api_product_writes_need_admin_key(client, locations, admin_headers):
    r = client.post("/v1/products", json={"sku": "FGC-001", "description": "Cup"})
    assert r.status_code == 401

    r = client.post(
        "/v1/products",
        json={"sku": "FGC-001", "description": "Cup"},
        headers={"X-Admin-Key": "wrong"},
    )
    assert r.status_code == 401
    assert client.get("/v1/products").json() == []
