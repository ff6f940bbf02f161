"""
EIDF CRM Dashboard - Main Entry Point

This is the home page of the dashboard showing an overview of the store.
"""

import sys
from pathlib import Path

# Ensure dashboard module is importable (required for Streamlit in Docker)
_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from datetime import datetime

import pandas as pd
import streamlit as st

from dashboard.components.charts import render_order_status_pie, render_revenue_chart, render_top_products_bar
from dashboard.components.health_cards import render_connection_settings, render_system_health_card
from dashboard.components.metrics_display import render_kpi_cards, render_sync_status_card
from dashboard.utils.api_client import get_api_client
from dashboard.utils.constants import DEFAULT_CONFIG, REVENUE_PERIODS
from dashboard.utils.formatters import format_currency, format_datetime, time_ago

# Page configuration
st.set_page_config(
    page_title=DEFAULT_CONFIG["page_title"],
    page_icon=DEFAULT_CONFIG["page_icon"],
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better styling
st.markdown(
    """
    <style>
    .main-header {
        font-size: 2.5rem;
        font-weight: bold;
        text-align: center;
        padding: 1rem 0;
        background: linear-gradient(90deg, #7f54b3 0%, #1f77b4 100%);
        -webkit-background-clip: text;
        -webkit-text-fill-color: transparent;
    }
    </style>
    """,
    unsafe_allow_html=True,
)

# Initialize API client
api_client = get_api_client()


def render_recent_activity(activity: list[dict] | None) -> None:
    st.markdown("### 🕐 Actividad Reciente")

    if not activity:
        st.info("ℹ️ Sin actividad reciente")
        return

    rows = [
        {
            "": "📦" if item.get("type") == "order" else "👤",
            "Evento": item.get("title"),
            "Detalle": item.get("description"),
            "Importe": format_currency(item["amount"]) if item.get("amount") is not None else "",
            "Estado": item.get("status") or "",
            "Cuándo": time_ago(item.get("date")),
        }
        for item in activity
    ]
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


def main():
    """Main dashboard function."""

    # Header
    st.markdown('<h1 class="main-header">🛒 EIDF CRM</h1>', unsafe_allow_html=True)
    st.markdown("---")

    # Sidebar configuration
    with st.sidebar:
        st.markdown("## ⚙️ Configuraciones")

        render_connection_settings()

        st.markdown("---")

        period_label = st.selectbox("Periodo de ingresos", options=list(REVENUE_PERIODS.keys()), index=1)

        # Manual refresh button
        if st.button("🔄 Actualizar Ahora", use_container_width=True):
            st.cache_data.clear()
            st.rerun()

        # Last update timestamp
        st.markdown("### 🕐 Última Actualización")
        st.text(format_datetime(datetime.now()))

    if not api_client.is_configured:
        st.info("ℹ️ Configure la conexión en la barra lateral para ver los datos de la tienda.")
        return

    # Sales KPIs
    st.markdown("## 📊 Resumen de Ventas")
    summary = api_client.get_analytics_summary()
    render_kpi_cards(summary)

    st.markdown("---")

    col1, col2 = st.columns([2, 1])

    with col1:
        revenue = api_client.get_revenue_by_day(days=REVENUE_PERIODS[period_label])
        render_revenue_chart(revenue or [], title=f"Ingresos - últimos {period_label}")

    with col2:
        render_order_status_pie((summary or {}).get("status_distribution", {}))

    col1, col2 = st.columns(2)

    with col1:
        render_top_products_bar(api_client.get_top_products(limit=5) or [])

    with col2:
        render_recent_activity(api_client.get_recent_activity(limit=10))

    st.markdown("---")

    # Cache sync
    render_sync_status_card(api_client.get_sync_status())

    st.markdown("---")

    # Backend health
    st.markdown("## 🏥 Estado del Sistema")
    render_system_health_card(api_client.get_health())


main()

# Footer
st.markdown("---")
col1, col2 = st.columns(2)

with col1:
    st.markdown("**EIDF CRM** · WooCommerce / WordPress")

with col2:
    st.markdown(f"**Actualizado**: {format_datetime(datetime.now(), 'display_short')}")
