# ==============================================================================
# CACHÉ LOCAL DE PEDIDOS
# ==============================================================================
# Copia local de los pedidos que muestra una vista (admin o courier).
#
# Cada registro tiene una marca "pending":
#   begin_update → aplica el estado optimista y marca pending
#   confirm      → la request terminó bien; se quita la marca
#   rollback     → la request falló; vuelve al estado anterior
#
# reconcile() reemplaza todo con la lista autoritativa del servidor, pero un
# registro pending conserva su estado optimista hasta que su request termine.
# apply_push_event() aplica un evento orderStatusUpdated: el último que
# llega gana (no hay números de secuencia).
# ==============================================================================

import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional


@dataclass
class CachedOrder:
    """Registro en caché con su marca de cambio pendiente."""
    data: Dict[str, Any]
    pending: bool = False
    previous_status: Optional[str] = None

    @property
    def status(self) -> str:
        return self.data.get('status', '')


class OrderCache:
    """Caché thread-safe de pedidos indexados por id interno."""

    def __init__(self, orders: Iterable[Dict[str, Any]] = ()):
        self._lock = threading.RLock()
        self._records: 'OrderedDict[str, CachedOrder]' = OrderedDict()
        self.reconcile(orders)

    # =========================================================================
    # LECTURA
    # =========================================================================

    def _find(self, order_key: Any) -> Optional[CachedOrder]:
        """Busca por id interno o por order_id."""
        key = str(order_key)
        record = self._records.get(key)
        if record is not None:
            return record
        for candidate in self._records.values():
            if candidate.data.get('order_id') == key:
                return candidate
        return None

    def get(self, order_key: Any) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._find(order_key)
            return dict(record.data) if record else None

    def is_pending(self, order_key: Any) -> bool:
        with self._lock:
            record = self._find(order_key)
            return bool(record and record.pending)

    def all(self) -> List[Dict[str, Any]]:
        """Pedidos en el orden del servidor, con la marca 'pending'."""
        with self._lock:
            return [dict(r.data, pending=r.pending) for r in self._records.values()]

    def __len__(self) -> int:
        return len(self._records)

    # =========================================================================
    # ACTUALIZACIÓN OPTIMISTA
    # =========================================================================

    def begin_update(self, order_key: Any, new_status: str) -> bool:
        """
        Aplica un estado optimista.

        Returns:
            False si el pedido ya tiene ese estado (nada que hacer)

        Raises:
            KeyError: Si el pedido no está en caché
        """
        with self._lock:
            record = self._find(order_key)
            if record is None:
                raise KeyError(order_key)
            if record.status == new_status:
                return False
            if not record.pending:
                record.previous_status = record.status
            record.data['status'] = new_status
            record.pending = True
            return True

    def confirm(self, order_key: Any, server_order: Optional[Dict[str, Any]] = None) -> None:
        """La request terminó bien; opcionalmente adopta la versión del servidor."""
        with self._lock:
            record = self._find(order_key)
            if record is None:
                return
            if server_order:
                record.data.update(server_order)
            record.pending = False
            record.previous_status = None

    def rollback(self, order_key: Any) -> None:
        """La request falló: vuelve al último estado conocido del servidor."""
        with self._lock:
            record = self._find(order_key)
            if record is None or not record.pending:
                return
            if record.previous_status is not None:
                record.data['status'] = record.previous_status
            record.pending = False
            record.previous_status = None

    # =========================================================================
    # RECONCILIACIÓN
    # =========================================================================

    def reconcile(self, orders: Iterable[Dict[str, Any]]) -> None:
        """Reemplaza el contenido por la lista autoritativa del servidor."""
        with self._lock:
            fresh: 'OrderedDict[str, CachedOrder]' = OrderedDict()
            for order in orders:
                key = str(order.get('id'))
                existing = self._records.get(key)
                if existing is not None and existing.pending:
                    optimistic = existing.status
                    existing.previous_status = order.get('status', existing.previous_status)
                    existing.data = dict(order, status=optimistic)
                    fresh[key] = existing
                else:
                    fresh[key] = CachedOrder(data=dict(order))
            self._records = fresh

    def apply_push_event(self, event: Dict[str, Any]) -> bool:
        """
        Aplica un evento orderStatusUpdated {orderId, status}.

        Si el pedido tiene un cambio pendiente, el evento actualiza el estado
        al que se volvería en un rollback.

        Returns:
            True si el pedido estaba en caché
        """
        order_key = event.get('orderId', event.get('order_id', event.get('id')))
        status = event.get('status')
        if order_key is None or not status:
            return False
        with self._lock:
            record = self._find(order_key)
            if record is None:
                return False
            if record.pending:
                record.previous_status = status
            else:
                record.data['status'] = status
            return True
