"""
WooCommerce client for the reports endpoints.
"""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from .base_client import BaseWooCommerceClient


def current_quarter_range(today: Optional[date] = None) -> Tuple[str, str]:
    """
    First and last day of the calendar quarter containing today.

    Returns:
        Tuple of ISO dates (date_min, date_max)
    """
    today = today or date.today()
    start_month = ((today.month - 1) // 3) * 3 + 1
    first_day = date(today.year, start_month, 1)
    if start_month == 10:
        next_quarter = date(today.year + 1, 1, 1)
    else:
        next_quarter = date(today.year, start_month + 3, 1)
    last_day = next_quarter - timedelta(days=1)
    return first_day.isoformat(), last_day.isoformat()


class WooCommerceReportClient(BaseWooCommerceClient):
    """
    Specialized client for WooCommerce reports.
    """

    async def get_order_totals(self) -> List[Dict[str, Any]]:
        """Order counts grouped by status."""
        return await self._get("reports/orders/totals")

    async def get_sales_report(self, period: str = "month", interval: str = "day") -> List[Dict[str, Any]]:
        """
        Sales report for a period.

        Args:
            period: week, month, last_month, year or quarter
            interval: Aggregation interval

        Returns:
            Sales report entries
        """
        params: Dict[str, Any] = {"interval": interval}
        if period == "quarter":
            params["date_min"], params["date_max"] = current_quarter_range()
        else:
            params["period"] = period
        return await self._get("reports/sales", params)
