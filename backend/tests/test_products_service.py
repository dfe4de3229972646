# Overview: Pytest coverage for the product lifecycle (create, update, delete, lookup).

import pytest

from jewelstock.errors import MissingCategory, NotFound
from jewelstock.models import AuditEvent, Product, StockTransaction
from jewelstock.services import products_service, stock_service
from jewelstock.services.products_service import generate_barcode, sku_for_barcode
from jewelstock.validation import ConflictError, ValidationError

from conftest import make_product


class TestCreateProduct:

    def test_opening_stock_weight_is_unit_weight_times_quantity(self, db_session, chains_a):
        assert chains_a["quantity"] == 5
        assert chains_a["weight"] == pytest.approx(50.0)

        txn = db_session.query(StockTransaction).filter_by(product_id=chains_a["id"]).one()
        assert txn.quantity == 5
        assert txn.weight == pytest.approx(50.0)
        assert txn.note == "Opening stock"

    def test_generates_barcode_and_sku(self, ring_a):
        assert len(ring_a["barcode"]) == 10
        assert ring_a["barcode"].isdigit()
        assert ring_a["sku"] == f"SKU-{ring_a['barcode'][-4:]}"

    def test_keeps_supplied_barcode_and_sku(self, repo, shop_a, rates_a):
        product = make_product(repo, shop_a.id, barcode="GR0001", sku="RING-GR1")
        assert product["barcode"] == "GR0001"
        assert product["sku"] == "RING-GR1"

    def test_duplicate_barcode_in_shop_is_conflict(self, repo, db_session, shop_a, rates_a):
        make_product(repo, shop_a.id, barcode="GR0001")
        with pytest.raises(ConflictError):
            make_product(repo, shop_a.id, name="Other Ring", barcode="GR0001")
        assert db_session.query(Product).filter_by(shop_id=shop_a.id).count() == 1

    def test_same_barcode_in_other_shop_is_allowed(self, repo, shop_a, shop_b, rates_a):
        make_product(repo, shop_a.id, barcode="GR0001")
        other = make_product(repo, shop_b.id, barcode="GR0001")
        assert other["shop_id"] == shop_b.id

    def test_individual_item_quantity_must_be_one(self, repo, shop_a, rates_a):
        with pytest.raises(ValidationError):
            make_product(repo, shop_a.id, quantity=3, item_type="Individual")

    def test_quantity_defaults_to_one(self, repo, shop_a, rates_a):
        product = make_product(repo, shop_a.id, quantity=None)
        assert product["quantity"] == 1

    def test_zero_quantity_rejected(self, repo, shop_a, rates_a):
        with pytest.raises(ValidationError):
            make_product(repo, shop_a.id, quantity=0, item_type="Group")

    def test_category_required(self, repo, shop_a):
        with pytest.raises(MissingCategory):
            make_product(repo, shop_a.id, category_name="")

    def test_writes_audit_event(self, db_session, ring_a):
        event = db_session.query(AuditEvent).filter_by(event_type="product.created").one()
        assert event.entity_id == ring_a["id"]
        assert event.payload["quantity"] == 1


class TestUpdateProduct:

    def test_updates_pricing_fields(self, repo, shop_a, ring_a):
        updated = products_service.update_product(
            repo, shop_id=shop_a.id, product_id=ring_a["id"], patch={"profit_percent": 20.0},
        )
        assert updated["price"] == 78000

    def test_rejects_stock_fields(self, repo, shop_a, ring_a):
        with pytest.raises(ValidationError):
            products_service.update_product(
                repo, shop_id=shop_a.id, product_id=ring_a["id"], patch={"quantity": 9},
            )
        with pytest.raises(ValidationError):
            products_service.update_product(
                repo, shop_id=shop_a.id, product_id=ring_a["id"], patch={"weight": 1.0},
            )

    def test_category_change_clears_subcategory(self, repo, shop_a, rates_a):
        ring = make_product(repo, shop_a.id, sub_category_name="Engagement")
        assert ring["sub_category_name"] == "Engagement"

        updated = products_service.update_product(
            repo, shop_id=shop_a.id, product_id=ring["id"],
            patch={"category_name": "Toe Rings", "category_type": "Silver"},
        )
        assert updated["category_name"] == "Toe Rings"
        assert updated["category_type"] == "Silver"
        assert updated["sub_category_id"] is None

    def test_barcode_clash(self, repo, shop_a, rates_a):
        make_product(repo, shop_a.id, barcode="AAA111")
        other = make_product(repo, shop_a.id, name="Second", barcode="BBB222")
        with pytest.raises(ConflictError):
            products_service.update_product(
                repo, shop_id=shop_a.id, product_id=other["id"], patch={"barcode": "AAA111"},
            )

    def test_sold_out_item_can_become_individual(self, repo, shop_a, chains_a):
        stock_service.stock_out(
            repo, shop_id=shop_a.id, product_id=chains_a["id"], quantity=5, weight=50, reason="Sale",
        )
        updated = products_service.update_product(
            repo, shop_id=shop_a.id, product_id=chains_a["id"], patch={"item_type": "Individual"},
        )
        assert updated["item_type"] == "Individual"
        assert updated["quantity"] == 0

    def test_stocked_group_cannot_become_individual(self, repo, shop_a, chains_a):
        with pytest.raises(ValidationError):
            products_service.update_product(
                repo, shop_id=shop_a.id, product_id=chains_a["id"], patch={"item_type": "Individual"},
            )

    def test_unknown_product(self, repo, shop_a):
        with pytest.raises(NotFound):
            products_service.update_product(repo, shop_id=shop_a.id, product_id=4040, patch={"name": "x"})


class TestDeleteProduct:

    def test_removes_product_and_ledger(self, repo, db_session, shop_a, chains_a):
        stock_service.stock_out(
            repo, shop_id=shop_a.id, product_id=chains_a["id"], quantity=1, weight=10, reason="Sale",
        )

        result = products_service.delete_product(repo, shop_id=shop_a.id, product_id=chains_a["id"])

        assert result["deleted"] == chains_a["id"]
        assert result["quantity"] == 4
        assert db_session.get(Product, chains_a["id"]) is None
        assert db_session.query(StockTransaction).filter_by(product_id=chains_a["id"]).count() == 0

        event = db_session.query(AuditEvent).filter_by(event_type="product.deleted").one()
        assert event.payload["barcode"] == chains_a["barcode"]
        assert event.payload["weight"] == pytest.approx(40.0)


class TestLookups:

    def test_find_by_barcode(self, repo, shop_a, ring_a):
        found = products_service.find_product_by_barcode(repo, shop_id=shop_a.id, barcode=ring_a["barcode"])
        assert found["id"] == ring_a["id"]
        assert found["price"] == 71500

    def test_barcode_of_other_shop(self, repo, shop_b, ring_a):
        with pytest.raises(NotFound):
            products_service.find_product_by_barcode(repo, shop_id=shop_b.id, barcode=ring_a["barcode"])

    def test_list_with_search(self, repo, shop_a, ring_a, chains_a):
        result = products_service.list_products(repo, shop_id=shop_a.id, search="chain")
        assert result["count"] == 1
        assert result["items"][0]["name"] == "Gold Chain"

        everything = products_service.list_products(repo, shop_id=shop_a.id)
        assert everything["count"] == 2

    def test_search_treats_wildcards_literally(self, repo, shop_a, ring_a, rates_a):
        make_product(repo, shop_a.id, name="22K 100% Gold Band")

        percent = products_service.list_products(repo, shop_id=shop_a.id, search="100%")
        assert [p["name"] for p in percent["items"]] == ["22K 100% Gold Band"]
        assert products_service.list_products(repo, shop_id=shop_a.id, search="%")["count"] == 1
        assert products_service.list_products(repo, shop_id=shop_a.id, search="_")["count"] == 0

    def test_list_bad_status(self, repo, shop_a):
        with pytest.raises(ValidationError):
            products_service.list_products(repo, shop_id=shop_a.id, status="Sold")


def test_barcode_helpers():
    barcode = generate_barcode()
    assert len(barcode) == 10 and barcode.isdigit()
    assert sku_for_barcode("0000012345") == "SKU-2345"


def test_audit_service_documents_its_invariants():
    from jewelstock.services import audit_service

    assert audit_service.__doc__ is not None
    assert "Append-only" in audit_service.__doc__
