"""
Health status and connection cards for the dashboard.
"""

import streamlit as st

from dashboard.utils.api_client import get_api_client
from dashboard.utils.formatters import get_status_icon, time_ago

SERVICE_DISPLAY_NAMES = {
    "database": "Base de Datos",
    "redis": "Redis Cache",
    "firebase": "Firebase Auth",
}


def render_system_health_card(health_data: dict | None) -> None:
    """
    Render backend health and the status of its dependencies.

    Args:
        health_data: Response from /health
    """
    if not health_data:
        st.error("❌ No se pudo obtener información de salud del sistema")
        return

    overall = health_data.get("status") == "ok"
    status_text = "Sistema Saludable" if overall else "Sistema con Problemas"
    st.markdown(f"### {get_status_icon(overall)} {status_text}")

    checks = health_data.get("checks", {})
    if not checks:
        return

    cols = st.columns(len(checks))
    for idx, (service_name, service_data) in enumerate(checks.items()):
        with cols[idx]:
            service_status = service_data.get("status", "unknown")
            st.metric(
                label=f"{get_status_icon(service_status)} {SERVICE_DISPLAY_NAMES.get(service_name, service_name)}",
                value=service_status.replace("_", " ").title(),
                delta=f"v{health_data.get('version', '?')}" if service_name == "database" else None,
                delta_color="off",
            )

    if health_data.get("timestamp"):
        st.caption(f"Comprobado {time_ago(health_data['timestamp'])}")


def render_connection_settings() -> None:
    """
    Sidebar form to override API URL, ID token and organization.

    Changing any of them clears the cached API responses.
    """
    api_client = get_api_client()

    st.markdown("### 🔗 Conexión API")

    with st.expander("Configurar conexión", expanded=not api_client.is_configured):
        with st.form("connection_settings"):
            base_url = st.text_input("API URL", value=api_client.base_url)
            id_token = st.text_input("Firebase ID Token", value=api_client.id_token, type="password")
            organization_id = st.text_input("Organization ID", value=api_client.organization_id)

            if st.form_submit_button("💾 Guardar", use_container_width=True):
                if api_client.configure(base_url, id_token, organization_id):
                    st.cache_data.clear()
                    st.rerun()

    if api_client.is_configured:
        organizations = api_client.get_my_organizations() or []
        current = next((org for org in organizations if org.get("id") == api_client.organization_id), None)
        if current:
            st.success(f"🏢 {current.get('name')} ({current.get('role', '?')})")
        else:
            st.text(f"Organization: {api_client.organization_id}")
    else:
        st.warning("⚠️ Configure el token y la organización para usar el dashboard")

    st.text(f"Base URL: {api_client.base_url}")
