# ==============================================================================
# SERVICIO DE EXPORTACIÓN - CSV
# ==============================================================================
# Exporta el listado de pedidos (admin) y la hoja de entregas (courier)
# con los productos y cantidades ya decodificados por fila.
# ==============================================================================

import csv
import io
from typing import Any, Dict, Iterable, List

from order_desk.models import Order
from order_desk.services import cart_codec


ORDER_COLUMNS = [
    'Pedido', 'Fecha', 'Cliente', 'Teléfono', 'Teléfono 2', 'Dirección',
    'Productos', 'Cantidad', 'Total', 'Estado',
]

COURIER_COLUMNS = [
    'Pedido', 'Cliente', 'Teléfono', 'Teléfono 2', 'Dirección',
    'Productos', 'Cantidad', 'Cobrar', 'Estado',
]


def _products_label(decoded: cart_codec.DecodedCart) -> str:
    """'NIRVAAN 5KG x2; NIRVAAN 1KG x1'"""
    return '; '.join(f"{item.name} x{item.quantity}" for item in decoded.items)


class ExportService:
    """Genera CSV en memoria a partir de registros de pedidos."""

    def __init__(self, product_service):
        self.product_service = product_service

    def _write(self, columns: List[str], rows: Iterable[List[Any]]) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(columns)
        writer.writerows(rows)
        return buffer.getvalue()

    def orders_csv(self, orders: Iterable[Dict[str, Any]]) -> str:
        catalog = self.product_service.catalog()
        rows = []
        for data in orders:
            order = Order.from_dict(data)
            decoded = cart_codec.decode_order(order, catalog)
            rows.append([
                order.order_id,
                order.created_at[:10],
                order.full_name,
                order.mobile,
                order.mobile2,
                order.address,
                _products_label(decoded),
                decoded.total_quantity,
                f"{order.total_amount:.2f}",
                order.status,
            ])
        return self._write(ORDER_COLUMNS, rows)

    def courier_csv(self, orders: Iterable[Dict[str, Any]]) -> str:
        catalog = self.product_service.catalog()
        rows = []
        for data in orders:
            order = Order.from_dict(data)
            decoded = cart_codec.decode_order(order, catalog)
            rows.append([
                order.order_id,
                order.full_name,
                order.mobile,
                order.mobile2,
                order.address,
                _products_label(decoded),
                decoded.total_quantity,
                f"{order.total_amount:.2f}",
                order.status,
            ])
        return self._write(COURIER_COLUMNS, rows)
