"""
Métricas de negocio calculadas sobre el caché del sitio.
"""

import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from eidf_crm.services import cache_store
from eidf_crm.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

REVENUE_STATUSES = ("completed", "processing")


def to_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Fecha ISO de WooCommerce (sin zona se asume UTC)."""
    if not value:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None


def _order_date(order: Dict[str, Any]) -> Optional[datetime]:
    return parse_date(order.get("date_created_gmt") or order.get("date_created"))


def compute_summary(
    orders: List[Dict[str, Any]], customers_count: int, products_count: int
) -> Dict[str, Any]:
    """
    KPIs a partir de una lista de pedidos.

    Args:
        orders: Pedidos WooCommerce
        customers_count: Número de clientes
        products_count: Número de productos

    Returns:
        Dict: total_revenue, orders_count, average_order_value, customers_count,
            products_count y status_distribution
    """
    revenue_orders = [o for o in orders if o.get("status") in REVENUE_STATUSES]
    total_revenue = round(sum(to_float(o.get("total")) for o in revenue_orders), 2)

    return {
        "total_revenue": total_revenue,
        "orders_count": len(orders),
        "average_order_value": round(total_revenue / len(revenue_orders), 2) if revenue_orders else 0.0,
        "customers_count": customers_count,
        "products_count": products_count,
        "status_distribution": dict(Counter(o.get("status", "unknown") for o in orders)),
    }


def compute_revenue_by_day(
    orders: List[Dict[str, Any]], days: int = 30, now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """
    Ingresos y pedidos por día en los últimos `days` días, incluidos los días sin ventas.
    """
    now = ensure_utc(now) if now else utcnow()
    start = (now - timedelta(days=days - 1)).date()

    buckets: Dict[str, Dict[str, Any]] = {}
    for offset in range(days):
        day = (start + timedelta(days=offset)).isoformat()
        buckets[day] = {"date": day, "revenue": 0.0, "orders": 0}

    for order in orders:
        created = _order_date(order)
        if created is None:
            continue
        day = created.date().isoformat()
        if day not in buckets:
            continue
        buckets[day]["orders"] += 1
        if order.get("status") in REVENUE_STATUSES:
            buckets[day]["revenue"] = round(buckets[day]["revenue"] + to_float(order.get("total")), 2)

    return sorted(buckets.values(), key=lambda b: b["date"])


def compute_top_products(orders: List[Dict[str, Any]], limit: int = 5) -> List[Dict[str, Any]]:
    totals: Dict[Any, Dict[str, Any]] = defaultdict(lambda: {"name": "", "quantity": 0, "revenue": 0.0})

    for order in orders:
        if order.get("status") not in REVENUE_STATUSES:
            continue
        for item in order.get("line_items") or []:
            product_id = item.get("product_id")
            entry = totals[product_id]
            entry["name"] = item.get("name") or entry["name"]
            entry["quantity"] += int(item.get("quantity") or 0)
            entry["revenue"] = round(entry["revenue"] + to_float(item.get("total")), 2)

    ranked = [{"product_id": product_id, **entry} for product_id, entry in totals.items()]
    ranked.sort(key=lambda p: p["revenue"], reverse=True)
    return ranked[:limit]


def compute_recent_activity(
    orders: List[Dict[str, Any]], customers: List[Dict[str, Any]], limit: int = 10
) -> List[Dict[str, Any]]:
    """
    Últimos pedidos y altas de clientes, del más reciente al más antiguo.
    """
    activity: List[Dict[str, Any]] = []

    for order in orders:
        created = _order_date(order)
        if created is None:
            continue
        billing = order.get("billing") or {}
        customer_name = f"{billing.get('first_name', '')} {billing.get('last_name', '')}".strip()
        activity.append(
            {
                "type": "order",
                "id": order.get("id"),
                "title": f"Commande #{order.get('number') or order.get('id')}",
                "description": customer_name or billing.get("email") or "Client invité",
                "amount": to_float(order.get("total")),
                "status": order.get("status"),
                "date": created.isoformat(),
            }
        )

    for customer in customers:
        created = parse_date(customer.get("date_created_gmt") or customer.get("date_created"))
        if created is None:
            continue
        name = f"{customer.get('first_name', '')} {customer.get('last_name', '')}".strip()
        activity.append(
            {
                "type": "customer",
                "id": customer.get("id"),
                "title": "Nouveau client",
                "description": name or customer.get("email") or "",
                "amount": None,
                "status": None,
                "date": created.isoformat(),
            }
        )

    activity.sort(key=lambda a: a["date"], reverse=True)
    return activity[:limit]


class AnalyticsService:
    """
    Analítica de un sitio a partir de su caché.
    """

    def __init__(self, session: AsyncSession, site_id: str):
        self.session = session
        self.site_id = site_id

    async def _orders(self) -> List[Dict[str, Any]]:
        return await cache_store.get_entities(self.session, "orders", self.site_id)

    async def summary(self) -> Dict[str, Any]:
        orders = await self._orders()
        customers_count = await cache_store.count_entities(self.session, "customers", self.site_id)
        products_count = await cache_store.count_entities(self.session, "products", self.site_id)
        return compute_summary(orders, customers_count, products_count)

    async def revenue_by_day(self, days: int = 30) -> List[Dict[str, Any]]:
        return compute_revenue_by_day(await self._orders(), days)

    async def top_products(self, limit: int = 5) -> List[Dict[str, Any]]:
        return compute_top_products(await self._orders(), limit)

    async def recent_activity(self, limit: int = 10) -> List[Dict[str, Any]]:
        customers = await cache_store.get_entities(self.session, "customers", self.site_id)
        return compute_recent_activity(await self._orders(), customers, limit)
