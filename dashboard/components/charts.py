"""
Interactive charts components using Plotly.
"""

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from dashboard.utils.constants import CHART_COLORS, DEFAULT_CONFIG, ORDER_STATUS_COLORS


def render_revenue_chart(revenue_data: list[dict], title: str = "Ingresos por Día") -> None:
    """
    Render daily revenue as bars with the order count as a line.

    Args:
        revenue_data: Buckets with date, revenue and orders
        title: Chart title
    """
    if not revenue_data:
        st.info("📊 Ningún dato de ingresos para mostrar")
        return

    df = pd.DataFrame(revenue_data)

    fig = go.Figure()
    fig.add_trace(
        go.Bar(
            x=df["date"],
            y=df["revenue"],
            name=f"Ingresos ({DEFAULT_CONFIG['currency']})",
            marker=dict(color=CHART_COLORS["primary"]),
        )
    )
    fig.add_trace(
        go.Scatter(
            x=df["date"],
            y=df["orders"],
            name="Pedidos",
            mode="lines+markers",
            yaxis="y2",
            line=dict(color=CHART_COLORS["warning"], width=2),
        )
    )

    fig.update_layout(
        title=title,
        xaxis_title="Fecha",
        yaxis=dict(title="Ingresos"),
        yaxis2=dict(title="Pedidos", overlaying="y", side="right", rangemode="tozero"),
        height=400,
        margin=dict(l=20, r=20, t=50, b=40),
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
        hovermode="x unified",
    )

    st.plotly_chart(fig, use_container_width=True)


def render_order_status_pie(status_distribution: dict[str, int]) -> None:
    """
    Render pie chart of orders by status.

    Args:
        status_distribution: Dictionary of status -> count
    """
    if not status_distribution or sum(status_distribution.values()) == 0:
        st.info("📊 Ningún pedido en caché")
        return

    statuses = list(status_distribution.keys())
    fig = px.pie(
        names=statuses,
        values=list(status_distribution.values()),
        title="Pedidos por Estado",
        color=statuses,
        color_discrete_map=ORDER_STATUS_COLORS,
        hole=0.4,
    )

    fig.update_traces(textposition="inside", textinfo="percent+label")
    fig.update_layout(height=400, margin=dict(l=20, r=20, t=50, b=20))

    st.plotly_chart(fig, use_container_width=True)


def render_top_products_bar(top_products: list[dict]) -> None:
    """
    Render horizontal bar chart of best sellers by revenue.

    Args:
        top_products: Records with name, quantity and revenue
    """
    if not top_products:
        st.info("📊 Ninguna venta registrada")
        return

    df = pd.DataFrame(top_products).sort_values("revenue")

    fig = go.Figure(
        data=[
            go.Bar(
                y=df["name"],
                x=df["revenue"],
                orientation="h",
                marker=dict(color=CHART_COLORS["success"]),
                text=[f"{q} uds." for q in df["quantity"]],
                textposition="inside",
            )
        ]
    )

    fig.update_layout(
        title="Productos más Vendidos",
        xaxis_title=f"Ingresos ({DEFAULT_CONFIG['currency']})",
        height=350,
        margin=dict(l=20, r=20, t=50, b=20),
    )

    st.plotly_chart(fig, use_container_width=True)


def render_usage_gauge(current: int, limit: int, title: str) -> None:
    """
    Render a gauge of plan usage against its limit.

    Args:
        current: Consumed amount this period
        limit: Plan limit
        title: Chart title
    """
    ratio = (current / limit * 100) if limit else 0

    if ratio >= 90:
        color = CHART_COLORS["danger"]
    elif ratio >= 70:
        color = CHART_COLORS["warning"]
    else:
        color = CHART_COLORS["success"]

    fig = go.Figure(
        go.Indicator(
            mode="gauge+number",
            value=current,
            domain={"x": [0, 1], "y": [0, 1]},
            title={"text": title, "font": {"size": 16}},
            gauge={
                "axis": {"range": [0, max(limit, 1)], "tickwidth": 1},
                "bar": {"color": color},
                "bgcolor": "white",
                "borderwidth": 2,
                "bordercolor": "gray",
                "threshold": {"line": {"color": "red", "width": 4}, "thickness": 0.75, "value": limit},
            },
            number={"suffix": f" / {limit}"},
        )
    )

    fig.update_layout(height=250, margin=dict(l=20, r=20, t=50, b=20))

    st.plotly_chart(fig, use_container_width=True)


def render_campaign_stats_bar(stats: dict[str, int]) -> None:
    """
    Render a funnel-like bar chart of campaign delivery stats.

    Args:
        stats: Campaign stats (sent, delivered, opened, clicked, bounced, unsubscribed)
    """
    labels = {
        "sent": "Enviados",
        "delivered": "Entregados",
        "opened": "Abiertos",
        "clicked": "Clics",
        "bounced": "Rebotes",
        "unsubscribed": "Bajas",
    }
    colors = [
        CHART_COLORS["primary"],
        CHART_COLORS["info"],
        CHART_COLORS["success"],
        CHART_COLORS["purple"],
        CHART_COLORS["danger"],
        CHART_COLORS["warning"],
    ]

    fig = go.Figure(
        data=[
            go.Bar(
                x=list(labels.values()),
                y=[stats.get(key, 0) for key in labels],
                marker=dict(color=colors),
                text=[stats.get(key, 0) for key in labels],
                textposition="outside",
            )
        ]
    )

    fig.update_layout(height=300, margin=dict(l=20, r=20, t=30, b=20), yaxis_title="Destinatarios")

    st.plotly_chart(fig, use_container_width=True)
