# ==============================================================================
# SERVICIO DE PEDIDOS
# ==============================================================================
# Toda la lógica de negocio de pedidos:
#   - Creación (validación → carrito → precio → codificación → persistencia)
#   - Listados paginados (admin y courier)
#   - Cambios de estado validados contra el flujo de estados
#   - Estadísticas del dashboard y analítica
#
# Las rutas solo orquestan request → service → response.
# ==============================================================================

import logging
import math
import re
from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from order_desk.models import (
    COURIER_STATUSES,
    CartSelection,
    Order,
    OrderStatus,
    make_cart,
    money_to_json,
    utc_now_iso,
)
from order_desk.performance_logger import profile_function
from order_desk.repositories.interfaces import IOrderRepository
from order_desk.services import cart_codec, status_workflow
from order_desk.services.audit_service import AuditService
from order_desk.services.pricing_service import (
    MAX_QUANTITY,
    calculate_totals,
    parse_selections,
    quantity_exceeds_limit,
)
from order_desk.services.product_service import ProductService
from order_desk.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

_MOBILE_RE = re.compile(r'^\+?[0-9]{7,15}$')


def parse_timestamp(value: str) -> Optional[datetime]:
    """ISO (con o sin 'Z') → datetime en hora local. None si no se puede parsear."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed
    return parsed.astimezone().replace(tzinfo=None)


class OrderService:
    """
    Servicio de pedidos.

    Depende de ProductService (catálogo vigente) y SettingsService
    (configuración de entrega y rango horario), nunca de archivos directamente.
    """

    DEFAULT_LIMIT = 10
    MAX_LIMIT = 100
    PUBLIC_USER = 'cliente'

    def __init__(
        self,
        order_repo: IOrderRepository,
        product_service: ProductService,
        settings_service: SettingsService,
        audit_service: Optional[AuditService] = None
    ):
        self.order_repo = order_repo
        self.product_service = product_service
        self.settings_service = settings_service
        self.audit_service = audit_service

    # =========================================================================
    # CREACIÓN
    # =========================================================================

    def _selections_from_payload(self, payload: Dict[str, Any]) -> List[CartSelection]:
        """Acepta 'products' [{productId, quantity}] o product_id + quantity."""
        if isinstance(payload.get('products'), list):
            return parse_selections(payload['products'])
        product_id = payload.get('product_id', payload.get('productId'))
        if product_id in (None, ''):
            return []
        return parse_selections([{'id': product_id, 'quantity': payload.get('quantity', 1)}])

    @staticmethod
    def _raw_quantities(payload: Dict[str, Any]) -> List[Any]:
        if isinstance(payload.get('products'), list):
            return [item.get('quantity') for item in payload['products'] if isinstance(item, dict)]
        return [payload.get('quantity')]

    def validate_order(self, payload: Dict[str, Any], catalog: Dict[str, Any]) -> Dict[str, Any]:
        """
        Valida un pedido antes de crearlo.

        Returns:
            {'ok': True, 'selections': [...]} o {'ok': False, 'error': str}
        """
        for key, label in (('fullName', 'El nombre'), ('address', 'La dirección'), ('mobile', 'El teléfono')):
            if not str(payload.get(key) or '').strip():
                return {'ok': False, 'error': f'{label} es requerido'}

        for key in ('mobile', 'mobile2'):
            value = re.sub(r'[\s-]', '', str(payload.get(key) or ''))
            if value and not _MOBILE_RE.match(value):
                return {'ok': False, 'error': f'Teléfono inválido: {payload.get(key)}'}

        selections = self._selections_from_payload(payload)
        if not selections:
            return {'ok': False, 'error': 'Debe seleccionar al menos un producto'}

        if any(quantity_exceeds_limit(q) for q in self._raw_quantities(payload)):
            return {'ok': False, 'error': f'La cantidad máxima por producto es {MAX_QUANTITY}'}

        for selection in selections:
            product = catalog.get(selection.product_id)
            if product is None:
                return {'ok': False, 'error': f'Producto no encontrado: {selection.product_id}'}
            if not product.is_available:
                return {'ok': False, 'error': f'Producto no disponible: {product.name}'}

        return {'ok': True, 'selections': selections}

    @profile_function(name="Crear pedido")
    def create_order(self, payload: Dict[str, Any], user: str = '') -> Dict[str, Any]:
        """
        Crea un pedido desde el formulario público.

        Args:
            payload: fullName, address, mobile, mobile2?, y products o product_id/quantity
            user: Quien lo crea (por defecto el cliente)

        Returns:
            {'ok': True, 'order_id': str, 'order': dict, 'pricing': dict}
            o {'ok': False, 'error': str}
        """
        catalog = self.product_service.catalog()
        check = self.validate_order(payload, catalog)
        if not check['ok']:
            return check

        selections = check['selections']
        settings = self.settings_service.load_delivery()
        breakdown = calculate_totals(selections, catalog, settings)
        encoded = cart_codec.encode_cart(make_cart(selections), catalog)

        order = Order(
            id=self.order_repo.next_internal_id(),
            order_id=self.order_repo.next_order_code(),
            full_name=str(payload['fullName']).strip(),
            address=str(payload['address']).strip(),
            mobile=re.sub(r'[\s-]', '', str(payload['mobile'])),
            mobile2=re.sub(r'[\s-]', '', str(payload.get('mobile2') or '')),
            product_id=encoded['product_id'],
            product_name=encoded['product_name'],
            quantity=encoded['quantity'],
            notes=encoded['notes'],
            status=OrderStatus.RECEIVED.value,
            total_amount=breakdown.grand_total,
            created_at=utc_now_iso(),
        )
        self.order_repo.add_order(order.to_dict())

        if self.audit_service:
            self.audit_service.log_order_created(
                user or self.PUBLIC_USER, order.order_id,
                float(breakdown.grand_total), len(selections)
            )
        logger.info("Pedido %s creado (%s)", order.order_id, breakdown.grand_total)
        return {
            'ok': True,
            'order_id': order.order_id,
            'order': order.to_dict(),
            'pricing': breakdown.to_dict(),
        }

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_order(self, order_key: str) -> Optional[Order]:
        data = self.order_repo.get_order(order_key)
        return Order.from_dict(data) if data else None

    def get_order_details(self, order_key: str, role: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Pedido + líneas decodificadas (+ acciones disponibles si se da el rol)."""
        order = self.get_order(order_key)
        if order is None:
            return None
        decoded = cart_codec.decode_order(order, self.product_service.catalog())
        details = order.to_dict()
        details['items'] = [item.to_dict() for item in decoded.items]
        details['subtotal'] = money_to_json(decoded.subtotal)
        details['displayQuantity'] = decoded.total_quantity
        details['isMulti'] = decoded.is_multi
        if role:
            details['actions'] = status_workflow.available_actions(order.status, role)
        return details

    @staticmethod
    def _matches_search(order: Dict[str, Any], search: str) -> bool:
        needle = search.strip().lower()
        haystack = (
            order.get('fullName', ''),
            str(order.get('mobile', '')),
            str(order.get('mobile2', '') or ''),
            order.get('order_id', ''),
            order.get('product_name', ''),
        )
        return any(needle in str(value).lower() for value in haystack)

    def _paginate(self, orders: List[Dict[str, Any]], page: Any, limit: Any) -> Dict[str, Any]:
        try:
            page = max(1, int(page))
        except (TypeError, ValueError):
            page = 1
        try:
            limit = min(self.MAX_LIMIT, max(1, int(limit)))
        except (TypeError, ValueError):
            limit = self.DEFAULT_LIMIT

        total = len(orders)
        start = (page - 1) * limit
        window = orders[start:start + limit]
        for order in window:
            order['displayQuantity'] = cart_codec.display_quantity(order)
        return {
            'orders': window,
            'total': total,
            'page': page,
            'limit': limit,
            'pages': math.ceil(total / limit) if total else 0,
        }

    def _filter(self, orders: Iterable[Dict[str, Any]], status: Optional[str],
                search: Optional[str]) -> List[Dict[str, Any]]:
        result = []
        for order in orders:
            if status and status != 'all' and order.get('status') != status:
                continue
            if search and not self._matches_search(order, search):
                continue
            result.append(order)
        return result

    def filter_orders(self, status: Optional[str] = None, search: Optional[str] = None,
                      courier_only: bool = False) -> List[Dict[str, Any]]:
        """Pedidos filtrados sin paginar (exportaciones)."""
        if not courier_only:
            return self._filter(self.order_repo.load(), status, search)
        orders = self._courier_orders()
        if status and status != 'all':
            wanted = status_workflow.normalize_status(status)
            orders = [o for o in orders if status_workflow.normalize_status(o.get('status')) == wanted]
        return self._filter(orders, None, search)

    def _courier_orders(self) -> List[Dict[str, Any]]:
        """Pedidos visibles para el courier; los legacy 'issued' cuentan como 'sended'."""
        return [
            order for order in self.order_repo.load()
            if status_workflow.normalize_status(order.get('status')) in COURIER_STATUSES
        ]

    def list_orders(self, page: Any = 1, limit: Any = DEFAULT_LIMIT,
                    status: Optional[str] = None, search: Optional[str] = None) -> Dict[str, Any]:
        """
        Listado paginado para el panel admin.

        Returns:
            {'orders', 'total', 'page', 'limit', 'pages'}
        """
        orders = self.filter_orders(status, search)
        return self._paginate(orders, page, limit)

    def list_courier_orders(self, page: Any = 1, limit: Any = DEFAULT_LIMIT,
                            status: Optional[str] = None, search: Optional[str] = None) -> Dict[str, Any]:
        """Como list_orders, restringido a estados visibles para el courier."""
        orders = self.filter_orders(status, search, courier_only=True)
        return self._paginate(orders, page, limit)

    # =========================================================================
    # CAMBIOS DE ESTADO
    # =========================================================================

    @profile_function(name="Cambiar estado de pedido")
    def change_status(self, order_key: str, new_status: str, user: str, role: str) -> Dict[str, Any]:
        """
        Cambia el estado de un pedido respetando el flujo de estados.

        Reaplicar el estado actual no escribe nada (changed=False).

        Returns:
            {'ok': True, 'order': dict, 'changed': bool, 'action': str}
            {'ok': False, 'error': str, 'not_found'|'forbidden': True}
        """
        order = self.get_order(order_key)
        if order is None:
            return {'ok': False, 'error': 'Pedido no encontrado', 'not_found': True}

        new_status = (new_status or '').strip().lower()
        check = status_workflow.validate_transition(order.status, new_status, role)
        if not check['allowed']:
            result = {'ok': False, 'error': check['error']}
            if check['action']:
                result['forbidden'] = True
            return result

        if check['action'] == status_workflow.NOOP:
            return {'ok': True, 'order': order.to_dict(), 'changed': False, 'action': check['action']}

        old_status = order.status
        updated = self.order_repo.update_order(order.id, {
            'status': new_status,
            'updatedAt': utc_now_iso(),
        })
        if updated is None:
            return {'ok': False, 'error': 'Pedido no encontrado', 'not_found': True}

        if self.audit_service:
            self.audit_service.log_status_change(user, order.order_id, old_status, new_status, check['action'])
        logger.info("Pedido %s: %s -> %s (%s)", order.order_id, old_status, new_status, user)
        return {'ok': True, 'order': updated, 'changed': True, 'action': check['action']}

    def delete_order(self, order_key: str, user: str = '') -> Dict[str, Any]:
        removed = self.order_repo.delete_order(order_key)
        if removed is None:
            return {'ok': False, 'error': 'Pedido no encontrado', 'not_found': True}
        if self.audit_service:
            self.audit_service.log_order_deleted(user, removed.get('order_id', str(order_key)))
        return {'ok': True}

    # =========================================================================
    # ESTADÍSTICAS
    # =========================================================================

    def _in_time_range(self, created: datetime, start: int, end: int) -> bool:
        minutes = created.hour * 60 + created.minute
        if start <= end:
            return start <= minutes <= end
        # Rango que cruza medianoche
        return minutes >= start or minutes <= end

    def dashboard_stats(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Contadores del dashboard admin.

        Returns:
            total, received, issued (sended/issued), courier (sended,
            in-transit, delivered), conform, today, monthly, today_in_range
        """
        now = now or datetime.now()
        time_range = self.settings_service.load_time_range()
        start, end = time_range.start_minutes, time_range.end_minutes

        stats = {
            'total': 0, 'received': 0, 'issued': 0, 'courier': 0,
            'conform': 0, 'today': 0, 'monthly': 0, 'today_in_range': 0,
        }
        courier_set = (OrderStatus.SENDED.value, OrderStatus.IN_TRANSIT.value, OrderStatus.DELIVERED.value)
        for order in self.order_repo.get_all():
            status = order.get('status')
            stats['total'] += 1
            if status == OrderStatus.RECEIVED.value:
                stats['received'] += 1
            if status in (OrderStatus.SENDED.value, OrderStatus.ISSUED.value):
                stats['issued'] += 1
            if status in courier_set:
                stats['courier'] += 1
            if status == OrderStatus.CONFORM.value:
                stats['conform'] += 1

            created = parse_timestamp(order.get('createdAt', ''))
            if created is None:
                continue
            if created.year == now.year and created.month == now.month:
                stats['monthly'] += 1
                if created.day == now.day:
                    stats['today'] += 1
                    if self._in_time_range(created, start, end):
                        stats['today_in_range'] += 1
        return stats

    def courier_stats(self) -> Dict[str, int]:
        """Contadores del portal courier."""
        stats = {status: 0 for status in sorted(COURIER_STATUSES)}
        for order in self._courier_orders():
            stats[status_workflow.normalize_status(order.get('status'))] += 1
        stats['total'] = sum(stats.values())
        return stats

    def analytics(self, days: int = 7, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Analítica: ingresos de pedidos entregados, distribución por estado
        y serie de los últimos `days` días.
        """
        now = now or datetime.now()
        series = OrderedDict()
        for offset in range(days - 1, -1, -1):
            day = (now - timedelta(days=offset)).strftime('%Y-%m-%d')
            series[day] = {'date': day, 'orders': 0, 'revenue': Decimal('0')}

        distribution: Dict[str, int] = {}
        revenue = Decimal('0')
        delivered_count = 0
        orders = [Order.from_dict(o) for o in self.order_repo.get_all()]
        for order in orders:
            distribution[order.status] = distribution.get(order.status, 0) + 1
            delivered = order.status == OrderStatus.DELIVERED.value
            if delivered:
                revenue += order.total_amount
                delivered_count += 1
            created = parse_timestamp(order.created_at)
            if created is None:
                continue
            bucket = series.get(created.strftime('%Y-%m-%d'))
            if bucket is not None:
                bucket['orders'] += 1
                if delivered:
                    bucket['revenue'] += order.total_amount

        return {
            'total_orders': len(orders),
            'delivered_orders': delivered_count,
            'revenue': money_to_json(revenue),
            'average_order_value': money_to_json(revenue / delivered_count) if delivered_count else 0.0,
            'status_distribution': distribution,
            'daily': [
                {'date': b['date'], 'orders': b['orders'], 'revenue': money_to_json(b['revenue'])}
                for b in series.values()
            ],
        }
