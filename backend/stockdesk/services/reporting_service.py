# Overview: Service-layer operations for reporting; read-only aggregations over sales and products.

from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import Product, Sale, SaleItem, User
from ..stock_status import StockStatus
from ..time_utils import utcnow

REPORT_PERIODS = ("today", "week", "month", "year")


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


def _period_filters(period: str | None, today: date) -> list:
    sale_day = func.date(Sale.created_at)
    if period is None or period == "" or period == "all_time":
        return []
    if period == "today":
        return [sale_day == today.isoformat()]
    if period == "week":
        return [sale_day >= (today - timedelta(days=7)).isoformat()]
    if period == "month":
        return [func.strftime("%Y-%m", Sale.created_at) == today.strftime("%Y-%m")]
    if period == "year":
        return [func.strftime("%Y", Sale.created_at) == today.strftime("%Y")]
    raise ReportError(f"Invalid period. Must be one of: {', '.join(REPORT_PERIODS)}")


def _scope(filters: list, user_id: int | None) -> list:
    if user_id is not None:
        return filters + [Sale.user_id == user_id]
    return filters


def _money(value) -> float:
    return round(float(value or 0), 2)


def sales_summary(*, period: str | None = None, user_id: int | None = None, today: date | None = None) -> dict:
    """
    Totals, payment-method split and the top 10 products for a period.

    user_id restricts every figure to one cashier's sales.
    """
    today = today or utcnow().date()
    filters = _scope(_period_filters(period, today), user_id)

    totals = (
        db.session.query(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.grand_total), 0),
            func.coalesce(func.avg(Sale.grand_total), 0),
            func.coalesce(func.sum(Sale.subtotal), 0),
            func.coalesce(func.sum(Sale.tax), 0),
            func.coalesce(func.sum(Sale.discount), 0),
            func.min(Sale.grand_total),
            func.max(Sale.grand_total),
        )
        .filter(*filters)
        .one()
    )

    payment_rows = (
        db.session.query(
            Sale.payment_method,
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.grand_total), 0),
        )
        .filter(*filters)
        .group_by(Sale.payment_method)
        .order_by(Sale.payment_method)
        .all()
    )

    units_sold = func.sum(SaleItem.quantity).label("units_sold")
    top_rows = (
        db.session.query(
            Product.id,
            Product.name,
            Product.sku,
            units_sold,
            func.coalesce(func.sum(SaleItem.total), 0),
        )
        .select_from(SaleItem)
        .join(Sale, SaleItem.sale_id == Sale.id)
        .join(Product, SaleItem.product_id == Product.id)
        .filter(*filters)
        .group_by(Product.id, Product.name, Product.sku)
        .order_by(units_sold.desc(), Product.id)
        .limit(10)
        .all()
    )

    count, revenue, average, subtotal, tax, discount, min_sale, max_sale = totals
    return {
        "total_sales": int(count or 0),
        "total_revenue": _money(revenue),
        "average_sale": _money(average),
        "total_subtotal": _money(subtotal),
        "total_tax": _money(tax),
        "total_discount": _money(discount),
        "min_sale": min_sale,
        "max_sale": max_sale,
        "payment_methods": [
            {"payment_method": method, "count": int(n), "total": _money(total)}
            for method, n, total in payment_rows
        ],
        "top_products": [
            {"id": pid, "name": name, "sku": sku, "units_sold": int(units or 0), "revenue": _money(rev)}
            for pid, name, sku, units, rev in top_rows
        ],
    }


def daily_report(target: date, *, user_id: int | None = None) -> list[dict]:
    """Sales count and revenue per hour for one day."""
    hour = func.strftime("%H:00", Sale.created_at).label("hour")
    filters = _scope([func.date(Sale.created_at) == target.isoformat()], user_id)
    rows = (
        db.session.query(hour, func.count(Sale.id), func.coalesce(func.sum(Sale.grand_total), 0))
        .filter(*filters)
        .group_by(hour)
        .order_by(hour)
        .all()
    )
    return [
        {"hour": h, "sales_count": int(n), "total_revenue": _money(total)}
        for h, n, total in rows
    ]


def monthly_report(year: int, month: int, *, user_id: int | None = None) -> list[dict]:
    """Sales count and revenue per day for one calendar month."""
    if not 1 <= month <= 12:
        raise ReportError("month must be between 1 and 12")
    day = func.strftime("%Y-%m-%d", Sale.created_at).label("date")
    filters = _scope([
        func.strftime("%Y", Sale.created_at) == f"{year:04d}",
        func.strftime("%m", Sale.created_at) == f"{month:02d}",
    ], user_id)
    rows = (
        db.session.query(day, func.count(Sale.id), func.coalesce(func.sum(Sale.grand_total), 0))
        .filter(*filters)
        .group_by(day)
        .order_by(day)
        .all()
    )
    return [
        {"date": d, "sales_count": int(n), "total_revenue": _money(total)}
        for d, n, total in rows
    ]


def inventory_dashboard(*, today: date | None = None) -> dict:
    today = today or utcnow().date()
    total, total_qty = db.session.query(
        func.count(Product.id), func.coalesce(func.sum(Product.quantity), 0)
    ).one()
    low_stock = (
        db.session.query(func.count(Product.id))
        .filter(Product.status == StockStatus.LOW_STOCK.value)
        .scalar()
    )
    out_of_stock = (
        db.session.query(func.count(Product.id))
        .filter(Product.status == StockStatus.OUT_OF_STOCK.value)
        .scalar()
    )
    sales_today = (
        db.session.query(func.coalesce(func.sum(Sale.grand_total), 0))
        .filter(func.date(Sale.created_at) == today.isoformat())
        .scalar()
    )
    month_revenue = (
        db.session.query(func.coalesce(func.sum(Sale.grand_total), 0))
        .filter(func.strftime("%Y-%m", Sale.created_at) == today.strftime("%Y-%m"))
        .scalar()
    )
    return {
        "totalProducts": int(total or 0),
        "totalStock": int(total_qty or 0),
        "lowStock": int(low_stock or 0),
        "outOfStock": int(out_of_stock or 0),
        "salesToday": _money(sales_today),
        "monthlyProfit": _money(month_revenue),
    }


def user_overview(*, today: date | None = None) -> dict:
    today = today or utcnow().date()
    week_ago = today - timedelta(days=7)

    def _count(*criteria) -> int:
        return int(db.session.query(func.count(User.id)).filter(*criteria).scalar() or 0)

    by_branch = (
        db.session.query(User.branch, func.count(User.id))
        .group_by(User.branch)
        .order_by(func.count(User.id).desc(), User.branch)
        .all()
    )
    return {
        "totalUsers": _count(),
        "activeUsers": _count(User.status == "active"),
        "inactiveUsers": _count(User.status == "inactive"),
        "adminUsers": _count(User.role == "admin"),
        "regularUsers": _count(User.role == "user"),
        "newThisWeek": _count(func.date(User.created_at) >= week_ago.isoformat()),
        "byBranch": [{"branch": branch, "count": int(n)} for branch, n in by_branch],
    }


def user_activity(user_id: int) -> dict:
    """Sale count, revenue and the 10 most recent sales rung up by one user."""
    count, revenue = (
        db.session.query(func.count(Sale.id), func.coalesce(func.sum(Sale.grand_total), 0))
        .filter(Sale.user_id == user_id)
        .one()
    )
    recent = (
        db.session.query(Sale)
        .filter(Sale.user_id == user_id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(10)
        .all()
    )
    return {
        "total_sales": int(count or 0),
        "total_revenue": _money(revenue),
        "recent_sales": [
            {
                "id": s.id,
                "invoice_number": s.invoice_number,
                "customer_name": s.customer_name,
                "grand_total": s.grand_total,
                "created_at": s.to_dict()["created_at"],
            }
            for s in recent
        ],
    }
