# ==============================================================================
# REPOSITORIO DE CONSULTAS
# ==============================================================================
# Encapsula el acceso a inquiries.json (lista)
# ==============================================================================

import os
from typing import Any, Dict, List

from order_desk.repositories.base import ListRepository


class InquiryRepository(ListRepository):
    """Consultas del formulario público, más recientes primero."""

    def __init__(self, base_path: str):
        file_path = os.path.join(base_path, 'inquiries.json')
        super().__init__(file_path)

    def load(self) -> List[Dict[str, Any]]:
        return sorted(self.get_all(), key=lambda i: i.get('createdAt', ''), reverse=True)

    def add_inquiry(self, inquiry_data: Dict[str, Any]) -> None:
        self.append(inquiry_data)

    def next_id(self) -> str:
        return self.next_numeric_id('id')
