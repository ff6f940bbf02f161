"""
Endpoints de datos WooCommerce/WordPress en vivo y proxy REST.

Todas las llamadas van a la tienda de la organización activa a través
del cliente de la fábrica. Los errores de WooCommerce se propagan como
WooCommerceAPIException con el estado de origen (4xx) o 502.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from eidf_crm.api.v1.dependencies import get_site_client
from eidf_crm.api.v1.schemas.content_schemas import OrderNoteCreate, OrderStatusUpdate
from eidf_crm.core.auth import ORGANIZATION_QUERY_PARAM
from eidf_crm.db.woocommerce_clients import WooCommerceClient
from eidf_crm.utils.error_handler import ValidationException

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_QUERY_PAGE = Query(default=1, ge=1)
DEFAULT_QUERY_PER_PAGE = Query(default=20, ge=1, le=100)

REPORT_PERIODS = ("week", "month", "last_month", "year", "quarter")


# === PEDIDOS ===


@router.get("/woocommerce/orders", summary="Página de pedidos")
async def list_orders(
    page: int = DEFAULT_QUERY_PAGE,
    per_page: int = DEFAULT_QUERY_PER_PAGE,
    status: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    customer: Optional[int] = Query(default=None),
    client: WooCommerceClient = Depends(get_site_client),
) -> Dict[str, Any]:
    filters = {key: value for key, value in {"status": status, "search": search, "customer": customer}.items() if value}
    return await client.get_orders_page(page=page, per_page=per_page, **filters)


@router.get("/woocommerce/orders/{order_id}", summary="Detalle de pedido")
async def get_order(order_id: int, client: WooCommerceClient = Depends(get_site_client)) -> Dict[str, Any]:
    return await client.get_order(order_id)


@router.put("/woocommerce/orders/{order_id}/status", summary="Cambiar estado de pedido")
async def update_order_status(
    order_id: int, payload: OrderStatusUpdate, client: WooCommerceClient = Depends(get_site_client)
) -> Dict[str, Any]:
    return await client.update_order_status(order_id, payload.status)


@router.get("/woocommerce/orders/{order_id}/notes", summary="Notas de pedido")
async def list_order_notes(order_id: int, client: WooCommerceClient = Depends(get_site_client)) -> List[Dict[str, Any]]:
    return await client.get_order_notes(order_id)


@router.post("/woocommerce/orders/{order_id}/notes", status_code=201, summary="Añadir nota a pedido")
async def create_order_note(
    order_id: int, payload: OrderNoteCreate, client: WooCommerceClient = Depends(get_site_client)
) -> Dict[str, Any]:
    return await client.create_order_note(order_id, payload.note, customer_note=payload.customer_note)


@router.get("/woocommerce/orders/{order_id}/refunds", summary="Reembolsos de pedido")
async def list_order_refunds(
    order_id: int, client: WooCommerceClient = Depends(get_site_client)
) -> List[Dict[str, Any]]:
    return await client.get_order_refunds(order_id)


# === CLIENTES ===


@router.get("/woocommerce/customers", summary="Página de clientes")
async def list_customers(
    page: int = DEFAULT_QUERY_PAGE,
    per_page: int = DEFAULT_QUERY_PER_PAGE,
    search: Optional[str] = Query(default=None),
    client: WooCommerceClient = Depends(get_site_client),
) -> Dict[str, Any]:
    filters = {"search": search} if search else {}
    return await client.get_customers_page(page=page, per_page=per_page, **filters)


@router.get("/woocommerce/customers/{customer_id}", summary="Detalle de cliente")
async def get_customer(customer_id: int, client: WooCommerceClient = Depends(get_site_client)) -> Dict[str, Any]:
    return await client.get_customer(customer_id)


@router.get("/woocommerce/customers/{customer_id}/orders", summary="Pedidos de un cliente")
async def list_customer_orders(
    customer_id: int,
    page: int = DEFAULT_QUERY_PAGE,
    per_page: int = DEFAULT_QUERY_PER_PAGE,
    client: WooCommerceClient = Depends(get_site_client),
) -> Dict[str, Any]:
    return await client.get_orders_page(page=page, per_page=per_page, customer=customer_id)


# === PRODUCTOS ===


@router.get("/woocommerce/products", summary="Página de productos")
async def list_products(
    page: int = DEFAULT_QUERY_PAGE,
    per_page: int = DEFAULT_QUERY_PER_PAGE,
    search: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    tag: Optional[str] = Query(default=None),
    sku: Optional[str] = Query(default=None),
    stock_status: Optional[str] = Query(default=None),
    min_price: Optional[str] = Query(default=None),
    max_price: Optional[str] = Query(default=None),
    orderby: Optional[str] = Query(default=None),
    order: Optional[str] = Query(default=None, pattern="^(asc|desc)$"),
    client: WooCommerceClient = Depends(get_site_client),
) -> Dict[str, Any]:
    return await client.get_products_page(
        page=page,
        per_page=per_page,
        search=search,
        status=status,
        category=category,
        tag=tag,
        sku=sku,
        stock_status=stock_status,
        min_price=min_price,
        max_price=max_price,
        orderby=orderby,
        order=order,
    )


@router.get("/woocommerce/products/{product_id}", summary="Detalle de producto")
async def get_product(product_id: int, client: WooCommerceClient = Depends(get_site_client)) -> Dict[str, Any]:
    return await client.get_product(product_id)


@router.put("/woocommerce/products/{product_id}", summary="Actualizar producto")
async def update_product(
    product_id: int, updates: Dict[str, Any], client: WooCommerceClient = Depends(get_site_client)
) -> Dict[str, Any]:
    return await client.update_product(product_id, updates)


@router.get("/woocommerce/categories", summary="Categorías de producto")
async def list_categories(client: WooCommerceClient = Depends(get_site_client)) -> List[Dict[str, Any]]:
    return await client.get_categories()


# === INFORMES ===


@router.get("/woocommerce/reports/totals", summary="Totales de pedidos por estado")
async def get_order_totals(client: WooCommerceClient = Depends(get_site_client)) -> List[Dict[str, Any]]:
    return await client.get_order_totals()


@router.get("/woocommerce/reports/sales", summary="Informe de ventas")
async def get_sales_report(
    period: str = Query(default="month"),
    client: WooCommerceClient = Depends(get_site_client),
) -> List[Dict[str, Any]]:
    if period not in REPORT_PERIODS:
        raise ValidationException(
            f"Invalid report period: {period}",
            field="period",
            invalid_value=period,
            expected_format=", ".join(REPORT_PERIODS),
        )
    return await client.get_sales_report(period=period)


# === WORDPRESS ===


@router.get("/wordpress/stats", summary="Recuento de contenido WordPress")
async def get_wordpress_stats(client: WooCommerceClient = Depends(get_site_client)) -> Dict[str, int]:
    return await client.get_wp_stats()


# === PROXY ===


@router.api_route(
    "/proxy/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    summary="Proxy REST hacia wp-json de la tienda",
)
async def proxy_request(path: str, request: Request, client: WooCommerceClient = Depends(get_site_client)) -> Response:
    """
    Reenvía la petición a {api_url}/wp-json/{path} con método, query y cuerpo JSON.

    Returns:
        Response: Estado y cuerpo de la respuesta de origen
    """
    json_data = None
    raw_body = await request.body()
    if raw_body:
        try:
            json_data = json.loads(raw_body)
        except ValueError as e:
            raise ValidationException("Request body must be valid JSON", field="body") from e

    params = {key: value for key, value in request.query_params.items() if key != ORGANIZATION_QUERY_PARAM}
    status_code, body, content_type = await client.forward(request.method, path, params=params, json_data=json_data)
    logger.debug(f"Proxy {request.method} /{path} -> {status_code}")

    if isinstance(body, (dict, list)):
        return Response(
            content=json.dumps(body), status_code=status_code, media_type=content_type or "application/json"
        )
    return Response(content=body or "", status_code=status_code, media_type=content_type)
