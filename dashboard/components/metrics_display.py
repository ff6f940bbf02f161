"""
Metrics display components for KPIs, sync status and plan usage.
"""

import pandas as pd
import streamlit as st

from dashboard.utils.constants import STATUS_ICONS, USAGE_METRICS
from dashboard.utils.formatters import (
    format_currency,
    format_datetime,
    format_number,
    format_usage,
    get_status_icon,
    time_ago,
    usage_ratio,
)


def render_kpi_cards(summary: dict | None) -> None:
    """
    Render the sales KPI row: revenue, orders, average order value and customers.

    Args:
        summary: Response from /analytics/summary
    """
    if not summary:
        st.warning("⚠️ KPIs no disponibles")
        return

    col1, col2, col3, col4 = st.columns(4)

    with col1:
        render_metric_card("Ingresos", format_currency(summary.get("total_revenue", 0)), icon="💰")

    with col2:
        render_metric_card("Pedidos", format_number(summary.get("orders_count", 0)), icon="📦")

    with col3:
        render_metric_card(
            "Ticket Medio",
            format_currency(summary.get("average_order_value", 0)),
            icon="🧾",
            help_text="Calculado sobre pedidos completados o en proceso",
        )

    with col4:
        render_metric_card("Clientes", format_number(summary.get("customers_count", 0)), icon="👥")


def render_sync_status_card(sync_status: dict | None) -> None:
    """
    Render cache sync status per data type.

    Args:
        sync_status: Response from /cache/status
    """
    st.markdown("### 🔄 Estado de Sincronización")

    if not sync_status:
        st.warning("⚠️ Estado de sincronización no disponible")
        return

    if sync_status.get("is_syncing"):
        st.info(f"{STATUS_ICONS['syncing']} Sincronización en curso...")

    data_types = sync_status.get("data_types") or {}
    if not data_types:
        st.info("ℹ️ El caché todavía no se ha sincronizado")
        return

    rows = [
        {
            "Tipo": data_type,
            "Estado": f"{get_status_icon(meta.get('status'))} {meta.get('status', 'unknown')}",
            "Elementos": meta.get("total_count", 0),
            "Última Sincronización": time_ago(meta.get("last_sync")),
            "Próxima": format_datetime(meta.get("next_sync_scheduled")),
            "Error": meta.get("error") or "",
        }
        for data_type, meta in data_types.items()
    ]
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


def render_usage_overview(usage: dict[str, dict | None]) -> None:
    """
    Render progress bars for each plan usage metric.

    Args:
        usage: metric -> response from /billing/usage/{metric}
    """
    cols = st.columns(len(USAGE_METRICS))

    for col, (metric, label) in zip(cols, USAGE_METRICS.items()):
        with col:
            data = usage.get(metric)
            if not data:
                st.metric(label, "N/A")
                continue

            current, limit = data.get("current", 0), data.get("limit", 0)
            st.metric(label, format_usage(current, limit))
            st.progress(usage_ratio(current, limit))
            if not data.get("allowed", True):
                st.error("🚫 Límite del plan alcanzado")


def render_metric_card(
    label: str, value: str | int | float, delta: str | None = None, icon: str = "📊", help_text: str | None = None
) -> None:
    """
    Render a single metric card.

    Args:
        label: Metric label
        value: Metric value
        delta: Optional delta/change value
        icon: Optional icon
        help_text: Optional help tooltip text
    """
    st.metric(
        label=f"{icon} {label}",
        value=value,
        delta=delta,
        delta_color="off" if delta else "normal",
        help=help_text,
    )
