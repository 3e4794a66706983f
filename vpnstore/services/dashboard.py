# vpnstore/services/dashboard.py
from collections import defaultdict
from datetime import datetime

from sqlalchemy import func

from vpnstore.extensions import db
from vpnstore.models import Order, Payment, Product, User
from vpnstore.utils.dates import utcnow


def _month_start(dt: datetime, back: int = 0) -> datetime:
    y, m = dt.year, dt.month - back
    while m < 1:
        m += 12
        y -= 1
    return datetime(y, m, 1)


def _revenue(start=None, end=None) -> float:
    q = db.session.query(func.coalesce(func.sum(Order.total), 0.0)).filter(Order.status == "completed")
    if start is not None:
        q = q.filter(Order.created_at >= start)
    if end is not None:
        q = q.filter(Order.created_at < end)
    return float(q.scalar() or 0)


def dashboard(now: datetime | None = None) -> dict:
    now = now or utcnow()
    this_month = _month_start(now)
    last_month = _month_start(now, 1)
    six_months_ago = _month_start(now, 5)

    stats = {
        "totalUsers": User.query.count(),
        "totalOrders": Order.query.count(),
        "totalProducts": Product.query.filter(Product.is_active.is_(True)).count(),
        "totalRevenue": _revenue(),
        "monthlyRevenue": _revenue(start=this_month),
        "lastMonthRevenue": _revenue(start=last_month, end=this_month),
        "pendingPayments": Payment.query.filter(Payment.status == "pending_verification").count(),
    }

    recent = Order.query.order_by(Order.created_at.desc(), Order.id.desc()).limit(10).all()

    # line items are JSON, so group in Python
    completed = Order.query.filter(Order.status == "completed").all()

    monthly = defaultdict(lambda: {"sales": 0.0, "orders": 0})
    products = defaultdict(lambda: {"totalSold": 0, "revenue": 0.0})
    for order in completed:
        if order.created_at and order.created_at >= six_months_ago:
            bucket = monthly[(order.created_at.year, order.created_at.month)]
            bucket["sales"] += order.total or 0
            bucket["orders"] += 1
        for item in order.items or []:
            qty = int(item.get("quantity") or 0)
            perf = products[item.get("name") or item.get("id") or "unknown"]
            perf["totalSold"] += qty
            perf["revenue"] += float(item.get("price") or 0) * qty

    monthly_sales = [
        {"year": y, "month": m, "sales": round(v["sales"], 2), "orders": v["orders"]}
        for (y, m), v in sorted(monthly.items())
    ]
    top = sorted(products.items(), key=lambda kv: kv[1]["totalSold"], reverse=True)[:10]
    product_performance = [
        {"name": name, "totalSold": v["totalSold"], "revenue": round(v["revenue"], 2)} for name, v in top
    ]

    return {
        "stats": stats,
        "recentOrders": [o.to_dict(with_user=True) for o in recent],
        "monthlySalesData": monthly_sales,
        "productPerformance": product_performance,
    }
