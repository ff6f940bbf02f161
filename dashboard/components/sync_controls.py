"""
Sync control buttons and forms for manual cache operations.
"""

import pandas as pd
import streamlit as st

from dashboard.utils.api_client import get_api_client
from dashboard.utils.constants import CACHE_DATA_TYPES
from dashboard.utils.formatters import format_datetime, format_number, get_status_icon


def render_sync_trigger_buttons() -> None:
    """Render buttons for full sync, single data type sync and cancellation."""
    st.markdown("#### Controles Manuales de Sincronización")

    api_client = get_api_client()

    col1, col2, col3 = st.columns(3)

    with col1:
        if st.button("🔄 Sincronizar Todo", help="Sincroniza todos los tipos de datos", use_container_width=True):
            with st.spinner("Sincronizando el caché completo..."):
                result = api_client.trigger_full_sync()

            if result and result.get("success"):
                st.success(f"✅ Sincronización completada: {format_number(result.get('total', 0))} elementos")
                st.json(result.get("results", {}))
                st.cache_data.clear()

    with col2:
        if st.button(
            "♻️ Forzar Sincronización Completa",
            help="Ignora la frescura del caché y vuelve a descargar todo",
            use_container_width=True,
            type="primary",
        ):
            if "confirm_full_sync" not in st.session_state:
                st.session_state.confirm_full_sync = False

            if not st.session_state.confirm_full_sync:
                st.warning("⚠️ Esto va a descargar TODOS los elementos. Haga clic nuevamente para confirmar.")
                st.session_state.confirm_full_sync = True
            else:
                with st.spinner("Ejecutando sincronización completa..."):
                    result = api_client.trigger_full_sync(force=True)

                if result and result.get("success"):
                    st.success(f"✅ Sincronización completada: {format_number(result.get('total', 0))} elementos")
                    st.cache_data.clear()

                st.session_state.confirm_full_sync = False

    with col3:
        if st.button("⏹️ Cancelar Sincronización", use_container_width=True):
            result = api_client.cancel_sync()
            if result is not None:
                if result.get("success"):
                    st.success("✅ Cancelación solicitada")
                else:
                    st.info(f"ℹ️ {result.get('message', 'Ninguna sincronización en curso')}")

    st.markdown("#### Sincronizar un Tipo de Dato")

    with st.form("single_sync"):
        col1, col2 = st.columns(2)

        with col1:
            data_type = st.selectbox("Tipo de dato", options=CACHE_DATA_TYPES)

        with col2:
            incremental = st.checkbox(
                "Incremental", value=True, help="Solo elementos modificados desde la última sincronización"
            )

        if st.form_submit_button("▶️ Sincronizar", use_container_width=True):
            with st.spinner(f"Sincronizando {data_type}..."):
                result = api_client.trigger_sync(data_type, incremental=incremental)

            if result and result.get("success"):
                st.success(f"✅ {data_type}: {format_number(result.get('synced', 0))} elementos sincronizados")
                st.cache_data.clear()


def render_clear_cache_button() -> None:
    """Render the destructive cache reset with a confirmation checkbox."""
    st.markdown("#### 🗑️ Vaciar Caché")

    confirm = st.checkbox("Confirmo que quiero borrar el caché local de esta organización")

    if st.button("🗑️ Vaciar Caché", disabled=not confirm, use_container_width=True):
        result = get_api_client().clear_cache()
        if result is not None:
            st.success("✅ Caché vaciado")
            st.cache_data.clear()


def render_sync_logs(logs: list[dict] | None) -> None:
    """
    Render the sync history table.

    Args:
        logs: Response from /cache/logs
    """
    st.markdown("#### 📜 Historial de Sincronizaciones")

    if not logs:
        st.info("ℹ️ Sin sincronizaciones registradas")
        return

    rows = [
        {
            "Tipo": log.get("data_type"),
            "Estado": f"{get_status_icon(log.get('status'))} {log.get('status')}",
            "Elementos": log.get("items_synced", 0),
            "Inicio": format_datetime(log.get("start_time")),
            "Fin": format_datetime(log.get("end_time")),
            "Error": log.get("error") or "",
        }
        for log in logs
    ]
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
