import pytest

from jewelstock.services import category_service, reporting_service, stock_service
from jewelstock.services.reporting_service import ReportError

from conftest import make_product


class TestDashboard:

    def test_totals_and_low_stock(self, repo, shop_a, ring_a, chains_a):
        stock_service.stock_out(
            repo, shop_id=shop_a.id, product_id=chains_a["id"], quantity=1, weight=10, reason="Sale",
        )

        data = reporting_service.dashboard(repo, shop_id=shop_a.id, low_stock_threshold=2)

        assert data["total_items"] == 2
        assert data["gold_weight"] == pytest.approx(50.0)
        assert data["silver_weight"] == 0.0
        assert data["gold_stock_value"] == pytest.approx(50.0 * 6000)
        assert data["today_sales_count"] == 1
        assert data["today_sales_weight"] == pytest.approx(10.0)
        assert [p["id"] for p in data["low_stock"]] == [ring_a["id"]]
        assert data["recent_transactions"][0]["type"] == "STOCK_OUT"


class TestStockReport:

    def test_rows_and_totals(self, repo, shop_a, ring_a, chains_a):
        report = reporting_service.stock_report(repo, shop_id=shop_a.id)
        assert report["totals"]["products"] == 2
        assert report["totals"]["quantity"] == 6
        assert report["totals"]["weight"] == pytest.approx(60.0)
        by_name = {row["name"]: row for row in report["rows"]}
        assert by_name["Gold Ring"]["price"] == 71500
        assert by_name["Gold Chain"]["category"] == "Chains"


class TestSalesReport:

    def test_groups_stock_out_by_day(self, repo, shop_a, chains_a):
        for _ in range(2):
            stock_service.stock_out(
                repo, shop_id=shop_a.id, product_id=chains_a["id"], quantity=1, weight=10, reason="Sale",
            )

        report = reporting_service.sales_report(repo, shop_id=shop_a.id, start=None, end=None)
        assert report["totals"] == {"sales_count": 2, "quantity": 2, "weight": 20.0}
        assert len(report["rows"]) == 1
        assert report["rows"][0]["sales_count"] == 2

    def test_range_excludes_other_days(self, repo, shop_a, chains_a):
        stock_service.stock_out(
            repo, shop_id=shop_a.id, product_id=chains_a["id"], quantity=1, weight=10, reason="Sale",
        )
        report = reporting_service.sales_report(repo, shop_id=shop_a.id, start="2001-01-01", end="2001-01-31")
        assert report["totals"]["sales_count"] == 0
        assert report["end"] == "2001-01-31T23:59:59Z"

    @pytest.mark.parametrize(
        "start,end",
        [("yesterday", None), ("2026-03-02", "2026-03-01")],
    )
    def test_bad_range(self, repo, shop_a, start, end):
        with pytest.raises(ReportError):
            reporting_service.sales_report(repo, shop_id=shop_a.id, start=start, end=end)


class TestCatalogReports:

    def test_added_items(self, repo, shop_a, ring_a, chains_a):
        report = reporting_service.added_items_report(repo, shop_id=shop_a.id, start=None, end=None)
        assert report["count"] == 2
        assert {row["category_name"] for row in report["rows"]} == {"Rings", "Chains"}

    def test_category_distribution_counts_dangling_as_unknown(self, repo, shop_a, ring_a, chains_a):
        category_service.delete_category(repo, shop_id=shop_a.id, category_id=ring_a["category_id"])
        make_product(repo, shop_a.id, name="Kada", weight=15.0, category_name="Bangles")

        rows = reporting_service.category_distribution(repo, shop_id=shop_a.id)["rows"]
        assert rows[0] == {"category": "Chains", "quantity": 5, "weight": 50.0, "products": 1}
        names = [row["category"] for row in rows]
        assert "Unknown" in names
        assert "Bangles" in names
