# ==============================================================================
# REPOSITORIO DE AUDITORÍA
# ==============================================================================
# audit.json: lista de AuditLog serializados, el más nuevo en la posición 0.
# Se recorta a MAX_LOGS entradas en cada escritura.
# ==============================================================================

import os
from typing import Any, Dict, List, Optional

from order_desk.models import AuditLog
from order_desk.repositories.base import ListRepository


class AuditRepository(ListRepository):
    """Historial de cambios de pedidos, productos y configuración."""

    MAX_LOGS = 10000

    def __init__(self, base_path: str):
        super().__init__(os.path.join(base_path, 'audit.json'))

    def load(self) -> List[Dict[str, Any]]:
        entries = self.get_all()
        entries.sort(key=lambda entry: entry.get('timestamp', ''), reverse=True)
        return entries

    def log(self, log_type: str, user: str, message: str,
            related_id: str = '', details: Optional[Dict[str, Any]] = None) -> None:
        entry = AuditLog(
            type=log_type,
            user=user or 'sistema',
            message=message,
            related_id=related_id,
            details=details or {},
        )
        with self._file_lock:
            entries = [entry.to_dict()] + self.get_all()
            self.save_all(entries[:self.MAX_LOGS])

    def get_logs_by_type(self, log_type: str) -> List[Dict[str, Any]]:
        return [entry for entry in self.load() if entry.get('type') == log_type]

    def get_logs_for(self, related_id: str) -> List[Dict[str, Any]]:
        """Historial de un pedido o producto."""
        return [entry for entry in self.load() if entry.get('related_id') == related_id]
