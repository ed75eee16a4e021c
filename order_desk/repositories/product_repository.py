# ==============================================================================
# REPOSITORIO DE PRODUCTOS
# ==============================================================================
# Encapsula todo el acceso a products.json
# Los productos se almacenan como diccionario: {id: {datos}}
# ==============================================================================

import os
from typing import Any, Dict, List, Optional

from order_desk.repositories.base import DictRepository


class ProductRepository(DictRepository):
    """
    Repositorio del catálogo de productos.

    Formato de datos en products.json:
    {
        "1": {"id": "1", "name": "NIRVAAN 5KG", "price": 10000.0,
              "delivery_charge": 350.0, "status": "available"}
    }
    """

    def __init__(self, base_path: str):
        file_path = os.path.join(base_path, 'products.json')
        super().__init__(file_path)

    def load(self) -> Dict[str, Dict[str, Any]]:
        return self.get_all()

    def list_products(self) -> List[Dict[str, Any]]:
        """Productos ordenados por id numérico cuando es posible."""
        def sort_key(item):
            pid = str(item.get('id', ''))
            return (0, int(pid), '') if pid.isdigit() else (1, 0, pid)
        return sorted(self.get_all().values(), key=sort_key)

    def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        return self.get_by_id(str(product_id))

    def save_product(self, product_data: Dict[str, Any]) -> None:
        self.update(str(product_data['id']), product_data)

    def delete_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        return self.delete(str(product_id))

    def next_id(self) -> str:
        """Siguiente id numérico libre."""
        ids = [int(k) for k in self.get_all().keys() if str(k).isdigit()]
        return str(max(ids) + 1 if ids else 1)
