# ==============================================================================
# SERVICIO DE PRODUCTOS - Catálogo
# ==============================================================================
# CRUD con validación. Eliminar un producto no modifica pedidos existentes:
# al mostrarlos se usa el precio guardado o el precio de respaldo.
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional

from order_desk.models import MAX_AMOUNT, Product, ProductStatus, to_decimal
from order_desk.repositories.interfaces import IProductRepository

logger = logging.getLogger(__name__)


# Catálogo inicial de desarrollo
SAMPLE_PRODUCTS = [
    {'id': '1', 'name': 'NIRVAAN 5KG', 'price': 10000, 'delivery_charge': 350, 'status': 'available'},
    {'id': '2', 'name': 'NIRVAAN 2.5KG', 'price': 5500, 'delivery_charge': 350, 'status': 'available'},
    {'id': '3', 'name': 'NIRVAAN 1KG', 'price': 2500, 'delivery_charge': 350, 'status': 'available'},
]


class ProductService:
    """Gestión del catálogo de productos."""

    VALID_STATUSES = frozenset(s.value for s in ProductStatus)

    def __init__(self, product_repo: IProductRepository, audit_service=None):
        self.product_repo = product_repo
        self.audit_service = audit_service

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def list_products(self, only_available: bool = False) -> List[Dict[str, Any]]:
        products = [Product.from_dict(p) for p in self.product_repo.list_products()]
        if only_available:
            products = [p for p in products if p.is_available]
        return [p.to_dict() for p in products]

    def get_product(self, product_id: str) -> Optional[Product]:
        data = self.product_repo.get_product(product_id)
        return Product.from_dict(data) if data else None

    def catalog(self) -> Dict[str, Product]:
        """Catálogo vigente indexado por id (para precios y decodificación)."""
        return {
            str(p['id']): Product.from_dict(p)
            for p in self.product_repo.list_products()
        }

    # =========================================================================
    # VALIDACIÓN
    # =========================================================================

    def validate_product(self, payload: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
        """
        Valida los campos de un producto.

        Args:
            payload: Datos recibidos
            partial: True en actualizaciones (solo valida lo enviado)

        Returns:
            {'ok': True, 'values': {...}} o {'ok': False, 'error': str}
        """
        values = {}
        if not partial or 'name' in payload:
            name = str(payload.get('name') or '').strip()
            if not name:
                return {'ok': False, 'error': 'El nombre del producto es requerido'}
            if ',' in name:
                return {'ok': False, 'error': 'El nombre del producto no puede contener comas'}
            values['name'] = name

        for key in ('price', 'delivery_charge'):
            if not partial or key in payload:
                raw = payload.get(key, 0 if key == 'delivery_charge' else None)
                amount = to_decimal(raw, None)
                if amount is None or not 0 <= amount <= MAX_AMOUNT:
                    return {'ok': False, 'error': f'{key} debe ser un número entre 0 y {MAX_AMOUNT}'}
                values[key] = amount

        if not partial or 'status' in payload:
            status = payload.get('status') or ProductStatus.AVAILABLE.value
            if status not in self.VALID_STATUSES:
                return {'ok': False, 'error': f'Estado de producto inválido: {status}'}
            values['status'] = ProductStatus(status)

        return {'ok': True, 'values': values}

    # =========================================================================
    # CRUD
    # =========================================================================

    def create_product(self, payload: Dict[str, Any], user: str = '') -> Dict[str, Any]:
        check = self.validate_product(payload)
        if not check['ok']:
            return check
        product = Product(id=self.product_repo.next_id(), **check['values'])
        self.product_repo.save_product(product.to_dict())
        if self.audit_service:
            self.audit_service.log_product_change(user, product.id, product.name, 'creado')
        return {'ok': True, 'product': product.to_dict()}

    def update_product(self, product_id: str, payload: Dict[str, Any], user: str = '') -> Dict[str, Any]:
        """Actualización parcial; retorna {'ok', 'product'|'error', 'not_found'?}."""
        product = self.get_product(product_id)
        if product is None:
            return {'ok': False, 'error': 'Producto no encontrado', 'not_found': True}
        check = self.validate_product(payload, partial=True)
        if not check['ok']:
            return check
        for key, value in check['values'].items():
            setattr(product, key, value)
        self.product_repo.save_product(product.to_dict())
        if self.audit_service:
            self.audit_service.log_product_change(user, product.id, product.name, 'actualizado')
        return {'ok': True, 'product': product.to_dict()}

    def delete_product(self, product_id: str, user: str = '') -> Dict[str, Any]:
        removed = self.product_repo.delete_product(product_id)
        if removed is None:
            return {'ok': False, 'error': 'Producto no encontrado', 'not_found': True}
        if self.audit_service:
            self.audit_service.log_product_change(user, str(product_id), removed.get('name', ''), 'eliminado')
        return {'ok': True}

    def seed_sample_products(self) -> int:
        """Carga el catálogo de ejemplo si está vacío. Retorna cuántos creó."""
        if self.product_repo.list_products():
            return 0
        for data in SAMPLE_PRODUCTS:
            self.product_repo.save_product(Product.from_dict(data).to_dict())
        logger.info("Catálogo de ejemplo creado (%d productos)", len(SAMPLE_PRODUCTS))
        return len(SAMPLE_PRODUCTS)
