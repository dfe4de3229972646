# Overview: Service-layer operations for reporting; dashboard and report data as plain dicts.

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime, timedelta

from ..measures import round_weight
from ..models import MetalType, Product, TransactionType
from ..repository import InventoryRepository
from ..time_utils import is_date_only, parse_iso_datetime, to_utc_z, utcnow
from .pricing_service import quote_price, rate_for_metal

UNKNOWN_CATEGORY = "Unknown"
RECENT_TRANSACTIONS = 10


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    """
    Inclusive range. A date-only end ("2026-03-01") covers that whole day.
    """
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ReportError("start/end must be ISO-8601 dates")
    if end_dt is not None and is_date_only(end):
        end_dt = end_dt + timedelta(days=1) - timedelta(microseconds=1)
    if start_dt and end_dt and start_dt > end_dt:
        raise ReportError("start must be before end")
    return start_dt, end_dt


def _range_dict(start_dt, end_dt) -> dict:
    return {
        "start": to_utc_z(start_dt) if start_dt else None,
        "end": to_utc_z(end_dt) if end_dt else None,
    }


def dashboard(
    repo: InventoryRepository,
    *,
    shop_id: int,
    low_stock_threshold: int = 2,
    now: datetime | None = None,
) -> dict:
    """
    Shop overview: item count, on-hand weight and stock value per metal,
    today's STOCK_OUT weight, low-stock products, recent transactions.
    """
    repo.get_shop(shop_id)
    products = repo.list_products(shop_id)
    categories = repo.category_names(shop_id)
    metal_rate = repo.get_metal_rate(shop_id)

    weight_by_metal = {MetalType.GOLD.value: 0.0, MetalType.SILVER.value: 0.0}
    for p in products:
        category = categories.get(p.category_id)
        if category is not None:
            weight_by_metal[category.type] += float(p.weight or 0.0)

    now = now or utcnow()
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    todays_out = repo.list_transactions(
        shop_id,
        type=TransactionType.STOCK_OUT.value,
        start=day_start,
        end=now,
    )

    low_stock = [
        {"id": p.id, "name": p.name, "barcode": p.barcode, "quantity": p.quantity, "weight": p.weight}
        for p in products
        if int(p.quantity or 0) <= low_stock_threshold
    ]

    gold_weight = round_weight(weight_by_metal[MetalType.GOLD.value])
    silver_weight = round_weight(weight_by_metal[MetalType.SILVER.value])
    return {
        "shop_id": shop_id,
        "total_items": len(products),
        "gold_weight": gold_weight,
        "silver_weight": silver_weight,
        "gold_stock_value": gold_weight * rate_for_metal(metal_rate, MetalType.GOLD.value),
        "silver_stock_value": silver_weight * rate_for_metal(metal_rate, MetalType.SILVER.value),
        "metal_rate": metal_rate.to_dict(),
        "today_sales_weight": round_weight(sum(t.weight for t in todays_out)),
        "today_sales_count": len(todays_out),
        "low_stock_threshold": low_stock_threshold,
        "low_stock": low_stock,
        "recent_transactions": [
            t.to_dict() for t in repo.list_transactions(shop_id, limit=RECENT_TRANSACTIONS)
        ],
    }


def stock_report(repo: InventoryRepository, *, shop_id: int) -> dict:
    repo.get_shop(shop_id)
    products = repo.list_products(shop_id)
    categories = repo.category_names(shop_id)
    subcategories = {s.id: s for s in repo.list_subcategories(shop_id)}
    metal_rate = repo.get_metal_rate(shop_id)

    rows = []
    total_weight = 0.0
    total_quantity = 0
    total_value = 0
    for p in products:
        category = categories.get(p.category_id)
        sub = subcategories.get(p.sub_category_id) if p.sub_category_id is not None else None
        price = quote_price(p, category, metal_rate).display_price
        rows.append({
            "product_id": p.id,
            "name": p.name,
            "sku": p.sku,
            "barcode": p.barcode,
            "category": category.name if category else UNKNOWN_CATEGORY,
            "sub_category": sub.name if sub else None,
            "weight": p.weight,
            "quantity": p.quantity,
            "price": price,
            "status": p.status,
        })
        total_weight += float(p.weight or 0.0)
        total_quantity += int(p.quantity or 0)
        total_value += price

    return {
        "shop_id": shop_id,
        "rows": rows,
        "totals": {
            "products": len(rows),
            "weight": round_weight(total_weight),
            "quantity": total_quantity,
            "value": total_value,
        },
    }


def sales_report(repo: InventoryRepository, *, shop_id: int, start: str | None, end: str | None) -> dict:
    """STOCK_OUT movements in the inclusive range, with per-day totals (UTC days)."""
    start_dt, end_dt = _parse_range(start, end)
    repo.get_shop(shop_id)

    txns = repo.list_transactions(
        shop_id,
        type=TransactionType.STOCK_OUT.value,
        start=start_dt,
        end=end_dt,
        newest_first=False,
    )

    per_day: OrderedDict[str, dict] = OrderedDict()
    for t in txns:
        day = t.occurred_at.strftime("%Y-%m-%d")
        bucket = per_day.setdefault(day, {"period": day, "sales_count": 0, "quantity": 0, "weight": 0.0})
        bucket["sales_count"] += 1
        bucket["quantity"] += int(t.quantity or 0)
        bucket["weight"] = round_weight(bucket["weight"] + float(t.weight or 0.0))

    return {
        "shop_id": shop_id,
        **_range_dict(start_dt, end_dt),
        "rows": list(per_day.values()),
        "transactions": [t.to_dict() for t in txns],
        "totals": {
            "sales_count": len(txns),
            "quantity": sum(int(t.quantity or 0) for t in txns),
            "weight": round_weight(sum(float(t.weight or 0.0) for t in txns)),
        },
    }


def added_items_report(repo: InventoryRepository, *, shop_id: int, start: str | None, end: str | None) -> dict:
    """Products created in the inclusive range, oldest first."""
    start_dt, end_dt = _parse_range(start, end)
    repo.get_shop(shop_id)

    query = repo.session.query(Product).filter(Product.shop_id == shop_id)
    if start_dt:
        query = query.filter(Product.created_at >= start_dt)
    if end_dt:
        query = query.filter(Product.created_at <= end_dt)
    products = query.order_by(Product.created_at.asc(), Product.id.asc()).all()

    categories = repo.category_names(shop_id)
    return {
        "shop_id": shop_id,
        **_range_dict(start_dt, end_dt),
        "rows": [
            {
                **p.to_dict(),
                "category_name": categories[p.category_id].name if p.category_id in categories else UNKNOWN_CATEGORY,
            }
            for p in products
        ],
        "count": len(products),
    }


def category_distribution(repo: InventoryRepository, *, shop_id: int) -> dict:
    """On-hand quantity per category name; dangling category ids count as "Unknown"."""
    repo.get_shop(shop_id)
    categories = repo.category_names(shop_id)

    totals: dict[str, dict] = {}
    for p in repo.list_products(shop_id):
        category = categories.get(p.category_id)
        name = category.name if category else UNKNOWN_CATEGORY
        bucket = totals.setdefault(name, {"category": name, "quantity": 0, "weight": 0.0, "products": 0})
        bucket["quantity"] += int(p.quantity or 0)
        bucket["weight"] = round_weight(bucket["weight"] + float(p.weight or 0.0))
        bucket["products"] += 1

    rows = sorted(totals.values(), key=lambda r: (-r["quantity"], r["category"]))
    return {"shop_id": shop_id, "rows": rows}
