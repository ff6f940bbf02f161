"""
Constants and configuration for the dashboard.
"""

# ==================== STATUS INDICATORS ====================

STATUS_ICONS = {
    "healthy": "🟢",
    "unhealthy": "🔴",
    "warning": "🟡",
    "unknown": "⚪",
    "disabled": "⚫",
    "not_initialized": "🟡",
    "success": "✅",
    "error": "❌",
    "idle": "⏸️",
    "syncing": "🔄",
    "completed": "✅",
    "failed": "❌",
    "started": "⏳",
}

# WooCommerce order statuses
ORDER_STATUSES = {
    "Todos": None,
    "Pendiente de pago": "pending",
    "En proceso": "processing",
    "En espera": "on-hold",
    "Completado": "completed",
    "Cancelado": "cancelled",
    "Reembolsado": "refunded",
    "Fallido": "failed",
}

ORDER_STATUS_ICONS = {
    "pending": "⏳",
    "processing": "🔄",
    "on-hold": "⏸️",
    "completed": "✅",
    "cancelled": "🚫",
    "refunded": "↩️",
    "failed": "❌",
}

CAMPAIGN_STATUS_ICONS = {
    "DRAFT": "📝",
    "SCHEDULED": "🗓️",
    "SENDING": "📤",
    "SENT": "✅",
    "CANCELLED": "🚫",
}

# ==================== COLOR SCHEMES ====================

# Chart colors (Plotly compatible)
CHART_COLORS = {
    "primary": "#1f77b4",
    "success": "#2ca02c",
    "warning": "#ff7f0e",
    "danger": "#d62728",
    "info": "#17becf",
    "purple": "#9467bd",
}

ORDER_STATUS_COLORS = {
    "completed": CHART_COLORS["success"],
    "processing": CHART_COLORS["primary"],
    "pending": CHART_COLORS["warning"],
    "on-hold": CHART_COLORS["purple"],
    "cancelled": "#7f7f7f",
    "refunded": CHART_COLORS["info"],
    "failed": CHART_COLORS["danger"],
}

# ==================== CACHE ====================

CACHE_DATA_TYPES = ["orders", "products", "customers", "posts", "pages", "media", "comments", "users"]

USAGE_METRICS = {
    "users": "Usuarios",
    "products": "Productos",
    "orders": "Pedidos",
    "ai_generations": "Generaciones IA",
}

AI_GENERATION_KINDS = {
    "Título": "title",
    "Descripción": "description",
    "Descripción corta": "short_description",
    "SEO Yoast": "seo",
}

# ==================== DEFAULT CONFIGURATION ====================

DEFAULT_CONFIG = {
    "api_url": "http://localhost:3001/api/v1",
    "timeout": 15,
    "page_title": "EIDF CRM",
    "page_icon": "🛒",
    "currency": "€",
}

REVENUE_PERIODS = {
    "7 días": 7,
    "30 días": 30,
    "90 días": 90,
}

TABLE_PAGE_SIZES = [10, 25, 50, 100]

MAX_TEST_EMAILS = 5

# ==================== DATETIME FORMATS ====================

DATETIME_FORMATS = {
    "display": "%Y-%m-%d %H:%M:%S",
    "display_short": "%H:%M:%S",
    "date_only": "%Y-%m-%d",
    "iso": "%Y-%m-%dT%H:%M:%S",
}
