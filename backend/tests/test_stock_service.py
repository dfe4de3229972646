# Overview: Pytest coverage for the stock ledger and inventory reconciler.

"""
Stock Ledger Tests

Verifies:
1. STOCK_IN / STOCK_OUT move the cached totals by exactly their amounts
2. An overdraft is rejected and leaves product and ledger untouched
3. Cached totals always equal the ledger sums (reconciliation audit)
4. Transactions snapshot the metal rate they were booked at
5. A write racing a stale read fails with ConcurrencyConflict and leaves no row
"""

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from sqlalchemy.orm import Session

from jewelstock.errors import ConcurrencyConflict, InsufficientStock, NotFound
from jewelstock.extensions import db
from jewelstock.models import Product, StockTransaction
from jewelstock.repository import InventoryRepository
from jewelstock.services.concurrency import run_with_retry
from jewelstock.services import stock_service
from jewelstock.validation import ValidationError

from conftest import make_product


def _ledger_rows(db_session, product_id):
    return (
        db_session.query(StockTransaction)
        .filter_by(product_id=product_id)
        .order_by(StockTransaction.id.asc())
        .all()
    )


class TestRecordTransaction:

    def test_opening_stock_is_booked(self, db_session, ring_a):
        rows = _ledger_rows(db_session, ring_a["id"])
        assert len(rows) == 1
        assert rows[0].type == "STOCK_IN"
        assert rows[0].reason == "Purchase"
        assert rows[0].quantity == 1
        assert rows[0].weight == pytest.approx(10.0)

    def test_stock_in_adds_to_totals(self, repo, db_session, shop_a, ring_a):
        txn = stock_service.stock_in(
            repo,
            shop_id=shop_a.id,
            product_id=ring_a["id"],
            quantity=5,
            weight=50,
            reason="Purchase",
        )

        product = db_session.get(Product, ring_a["id"])
        assert product.quantity == 6
        assert product.weight == pytest.approx(60.0)
        assert txn.id is not None
        assert txn.shop_id == shop_a.id
        assert txn.timestamp > 0

    def test_stock_out_removes_from_totals(self, repo, db_session, shop_a, chains_a):
        stock_service.stock_out(
            repo,
            shop_id=shop_a.id,
            product_id=chains_a["id"],
            quantity=2,
            weight=20,
            reason="Sale",
            note="Counter sale",
        )

        product = db_session.get(Product, chains_a["id"])
        assert product.quantity == 3
        assert product.weight == pytest.approx(30.0)
        latest = _ledger_rows(db_session, chains_a["id"])[-1]
        assert latest.note == "Counter sale"
        assert latest.reason == "Sale"

    def test_overdraft_is_rejected_without_side_effects(self, repo, db_session, shop_a, ring_a):
        with pytest.raises(InsufficientStock) as excinfo:
            stock_service.stock_out(
                repo,
                shop_id=shop_a.id,
                product_id=ring_a["id"],
                quantity=10,
                weight=0,
                reason="Sale",
            )

        assert excinfo.value.on_hand_quantity == 1
        assert excinfo.value.requested_quantity == 10
        product = db_session.get(Product, ring_a["id"])
        assert product.quantity == 1
        assert product.weight == pytest.approx(10.0)
        assert len(_ledger_rows(db_session, ring_a["id"])) == 1

    def test_weight_overdraft_is_rejected(self, repo, shop_a, ring_a):
        with pytest.raises(InsufficientStock):
            stock_service.stock_out(
                repo,
                shop_id=shop_a.id,
                product_id=ring_a["id"],
                quantity=0,
                weight=10.5,
                reason="Damage",
            )

    def test_removing_everything_is_allowed(self, repo, db_session, shop_a, ring_a):
        stock_service.stock_out(
            repo, shop_id=shop_a.id, product_id=ring_a["id"], quantity=1, weight=10, reason="Sale",
        )
        product = db_session.get(Product, ring_a["id"])
        assert product.quantity == 0
        assert product.weight == 0.0

    @pytest.mark.parametrize(
        "quantity,weight",
        [(0, 0), (-1, 5), (1, -0.5), (1.5, 1)],
    )
    def test_invalid_amounts(self, repo, shop_a, ring_a, quantity, weight):
        with pytest.raises(ValidationError):
            stock_service.stock_in(
                repo, shop_id=shop_a.id, product_id=ring_a["id"],
                quantity=quantity, weight=weight, reason="Purchase",
            )

    def test_invalid_reason_and_type(self, repo, shop_a, ring_a):
        with pytest.raises(ValidationError):
            stock_service.stock_in(
                repo, shop_id=shop_a.id, product_id=ring_a["id"], quantity=1, weight=1, reason="Gift",
            )
        with pytest.raises(ValidationError):
            stock_service.record_transaction(
                repo, shop_id=shop_a.id, product_id=ring_a["id"], type="MOVE",
                quantity=1, weight=1, reason="Other",
            )

    def test_unknown_product(self, repo, shop_a):
        with pytest.raises(NotFound):
            stock_service.stock_in(
                repo, shop_id=shop_a.id, product_id=99999, quantity=1, weight=1, reason="Purchase",
            )

    def test_rate_snapshot(self, repo, db_session, shop_a, ring_a):
        from jewelstock.services import metal_rate_service

        metal_rate_service.update_metal_rates(repo, shop_id=shop_a.id, gold_rate=6500)
        txn = stock_service.stock_in(
            repo, shop_id=shop_a.id, product_id=ring_a["id"], quantity=1, weight=10, reason="Purchase",
        )
        rows = _ledger_rows(db_session, ring_a["id"])
        assert rows[0].rate_per_gram == 6000
        assert txn.rate_per_gram == 6500


class TestListTransactions:

    def test_newest_first_and_filters(self, repo, shop_a, chains_a):
        stock_service.stock_out(
            repo, shop_id=shop_a.id, product_id=chains_a["id"], quantity=1, weight=10, reason="Sale",
        )
        txns = stock_service.list_transactions(repo, shop_id=shop_a.id, product_id=chains_a["id"])
        assert [t.type for t in txns] == ["STOCK_OUT", "STOCK_IN"]

        outs = stock_service.list_transactions(repo, shop_id=shop_a.id, type="STOCK_OUT")
        assert len(outs) == 1

        limited = stock_service.list_transactions(repo, shop_id=shop_a.id, limit=1)
        assert len(limited) == 1

    def test_product_of_other_shop(self, repo, shop_a, shop_b, ring_a):
        with pytest.raises(NotFound):
            stock_service.list_transactions(repo, shop_id=shop_b.id, product_id=ring_a["id"])

    def test_bad_limit(self, repo, shop_a):
        with pytest.raises(ValidationError):
            stock_service.list_transactions(repo, shop_id=shop_a.id, limit=0)


class TestSuggestWeight:

    def test_average_weight(self, db_session, chains_a):
        product = db_session.get(Product, chains_a["id"])
        assert stock_service.suggest_stock_out_weight(product, 2) == pytest.approx(20.0)

    def test_nothing_on_hand(self, repo, db_session, shop_a, ring_a):
        stock_service.stock_out(
            repo, shop_id=shop_a.id, product_id=ring_a["id"], quantity=1, weight=10, reason="Sale",
        )
        product = db_session.get(Product, ring_a["id"])
        assert stock_service.suggest_stock_out_weight(product, 1) == 0.0

    def test_quantity_must_be_positive(self, db_session, chains_a):
        product = db_session.get(Product, chains_a["id"])
        with pytest.raises(ValidationError):
            stock_service.suggest_stock_out_weight(product, 0)


class TestReconciliation:

    def test_consistent_after_movements(self, repo, shop_a, chains_a, ring_a):
        stock_service.stock_in(
            repo, shop_id=shop_a.id, product_id=chains_a["id"], quantity=3, weight=31.25, reason="Return",
        )
        stock_service.stock_out(
            repo, shop_id=shop_a.id, product_id=chains_a["id"], quantity=4, weight=40.125, reason="Sale",
        )

        row = stock_service.audit_product_ledger(repo, shop_id=shop_a.id, product_id=chains_a["id"])
        assert row["consistent"]
        assert row["ledger_quantity"] == 4
        assert row["ledger_weight"] == pytest.approx(41.125)
        assert row["entries"] == 3

        report = stock_service.audit_shop_ledger(repo, shop_id=shop_a.id)
        assert report["products_checked"] == 2
        assert report["consistent"]
        assert report["drift"] == []

    def test_detects_cache_written_outside_ledger(self, repo, db_session, shop_a, ring_a):
        product = db_session.get(Product, ring_a["id"])
        product.quantity = 4
        db_session.commit()

        report = stock_service.audit_shop_ledger(repo, shop_id=shop_a.id)
        assert not report["consistent"]
        assert report["drift"][0]["product_id"] == ring_a["id"]
        assert report["drift"][0]["quantity_drift"] == 3


class TestLedgerProperties:

    @given(
        moves=st.lists(
            st.tuples(
                st.sampled_from(["STOCK_IN", "STOCK_OUT"]),
                st.integers(min_value=0, max_value=5),
                st.integers(min_value=0, max_value=5000).map(lambda mg: mg / 1000),
            ),
            min_size=1,
            max_size=12,
        )
    )
    @settings(
        max_examples=25,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    def test_totals_follow_accepted_movements(self, repo, db_session, shop_a, rates_a, moves):
        created = make_product(
            repo, shop_a.id, name="Bangle Set", weight=2.0, quantity=3, item_type="Group",
            category_name="Bangles",
        )
        # Expected totals kept in milligrams, independent of the ledger
        expected_quantity, expected_mg = 3, 6000
        for type, quantity, weight in moves:
            if quantity == 0 and weight == 0:
                continue
            weight_mg = round(weight * 1000)
            overdraft = type == "STOCK_OUT" and (quantity > expected_quantity or weight_mg > expected_mg)
            try:
                stock_service.record_transaction(
                    repo,
                    shop_id=shop_a.id,
                    product_id=created["id"],
                    type=type,
                    quantity=quantity,
                    weight=weight,
                    reason="Adjustment",
                )
            except InsufficientStock:
                assert overdraft
            else:
                assert not overdraft
                sign = 1 if type == "STOCK_IN" else -1
                expected_quantity += sign * quantity
                expected_mg += sign * weight_mg

            product = db_session.get(Product, created["id"])
            assert product.quantity == expected_quantity
            assert product.weight == pytest.approx(expected_mg / 1000, abs=1e-9)
            assert product.quantity >= 0
            assert product.weight >= 0

        row = stock_service.audit_product_ledger(repo, shop_id=shop_a.id, product_id=created["id"])
        assert row["consistent"], row
        assert row["ledger_quantity"] == expected_quantity


class TestConcurrentWrites:
    """Two writers racing on one product: the loser gets ConcurrencyConflict and writes nothing."""

    @pytest.fixture
    def second_repo(self, db_session):
        session = Session(bind=db.engine)
        yield InventoryRepository(session)
        session.close()

    def test_stale_stock_out_conflicts(self, repo, second_repo, db_session, shop_a, ring_a):
        # Second writer reads the product before the first one sells it
        stale = second_repo.get_product(shop_a.id, ring_a["id"])  # noqa: F841 - keep the stale object in the identity map

        stock_service.stock_out(
            repo, shop_id=shop_a.id, product_id=ring_a["id"], quantity=1, weight=10, reason="Sale",
        )

        with pytest.raises(ConcurrencyConflict):
            stock_service.stock_out(
                second_repo, shop_id=shop_a.id, product_id=ring_a["id"], quantity=1, weight=10, reason="Sale",
            )

        db_session.expire_all()
        product = db_session.get(Product, ring_a["id"])
        assert product.quantity == 0
        assert product.weight == 0.0
        assert len(_ledger_rows(db_session, ring_a["id"])) == 2

    def test_retry_rereads_and_reports_insufficient_stock(self, repo, second_repo, db_session, shop_a, ring_a):
        stale = second_repo.get_product(shop_a.id, ring_a["id"])  # noqa: F841 - keep the stale object in the identity map
        stock_service.stock_out(
            repo, shop_id=shop_a.id, product_id=ring_a["id"], quantity=1, weight=10, reason="Sale",
        )

        attempts = []

        def sell():
            attempts.append(1)
            return stock_service.stock_out(
                second_repo, shop_id=shop_a.id, product_id=ring_a["id"], quantity=1, weight=10, reason="Sale",
            )

        with pytest.raises(InsufficientStock):
            run_with_retry(sell, attempts=3, backoff_base=0)

        assert len(attempts) == 2
        db_session.expire_all()
        assert len(_ledger_rows(db_session, ring_a["id"])) == 2

    def test_retry_gives_up_after_attempts(self):
        calls = []

        def always_conflicts():
            calls.append(1)
            raise ConcurrencyConflict("busy")

        with pytest.raises(ConcurrencyConflict):
            run_with_retry(always_conflicts, attempts=3, backoff_base=0)
        assert len(calls) == 3
