# ==============================================================================
# REPOSITORIO DE PEDIDOS
# ==============================================================================
# Encapsula todo el acceso a orders.json
# Los pedidos se almacenan como lista: [{pedido1}, {pedido2}, ...]
# ==============================================================================

import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from order_desk.repositories.base import ListRepository


class OrderRepository(ListRepository):
    """
    Repositorio para gestión de pedidos.

    Formato de datos en orders.json:
    [
        {
            "id": "1",
            "order_id": "ORD20240101001",
            "fullName": "Nimal Perera",
            "address": "12 Main St, Colombo",
            "mobile": "0771234567",
            "product_id": "1,2",
            "product_name": "NIRVAAN 5KG,NIRVAAN 1KG",
            "quantity": "[{\"id\":\"1\",\"quantity\":2}, ...]",
            "status": "received",
            "total_amount": 25350.0,
            "notes": "{...}",
            "createdAt": "2024-01-01T10:00:00.000Z"
        }
    ]
    """

    def __init__(self, base_path: str):
        file_path = os.path.join(base_path, 'orders.json')
        super().__init__(file_path)

    def load(self) -> List[Dict[str, Any]]:
        """Todos los pedidos, más recientes primero."""
        orders = self.get_all()
        return sorted(orders, key=lambda o: o.get('createdAt', ''), reverse=True)

    def save(self, orders: List[Dict[str, Any]]) -> None:
        self.save_all(orders)

    @staticmethod
    def _key_matcher(order_key: str):
        key = str(order_key)
        return lambda order: str(order.get('id')) == key or order.get('order_id') == key

    def get_order(self, order_key: str) -> Optional[Dict[str, Any]]:
        """
        Busca un pedido por id interno o por order_id.

        Args:
            order_key: id interno ("12") o código ("ORD20240101001")

        Returns:
            Datos del pedido o None
        """
        matches = self._key_matcher(order_key)
        return next((order for order in self.get_all() if matches(order)), None)

    def add_order(self, order_data: Dict[str, Any]) -> None:
        self.append(order_data)

    def update_order(self, order_key: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Pedido actualizado, o None si no existe."""
        return self.update_first(self._key_matcher(order_key), updates)

    def delete_order(self, order_key: str) -> Optional[Dict[str, Any]]:
        return self.pop_first(self._key_matcher(order_key))

    def next_internal_id(self) -> str:
        return self.next_numeric_id('id')

    def next_order_code(self, when: Optional[datetime] = None) -> str:
        """
        Genera el siguiente código de pedido del día.

        Formato: ORD + YYYYMMDD + secuencia de 3 dígitos (ORD20240101001).
        """
        when = when or datetime.now()
        prefix = 'ORD' + when.strftime('%Y%m%d')
        max_seq = 0
        for order in self.get_all():
            code = order.get('order_id', '')
            if code.startswith(prefix):
                try:
                    max_seq = max(max_seq, int(code[len(prefix):]))
                except ValueError:
                    continue
        return f"{prefix}{max_seq + 1:03d}"

