# ==============================================================================
# CODIFICACIÓN DEL CARRITO - Formato plano del pedido ↔ carrito lógico
# ==============================================================================
# Un pedido guarda su carrito en campos planos:
#
#   Un producto:   product_id="1"    product_name="NIRVAAN 5KG"   quantity=2
#   Varios:        product_id="1,3"  product_name="A,B"
#                  quantity='[{"id":"1","quantity":2},{"id":"3","quantity":1}]'
#                  notes='{"product_ids":[...],"quantities":[...],"products":[...]}'
#
# Solo este módulo conoce ese formato. El resto del sistema trabaja con
# SingleCart / MultiCart y con DecodedCart.
#
# La decodificación NUNCA lanza excepciones: cada estrategia que falla cede
# a la siguiente y, al final, se asume 1 unidad por producto nombrado.
# ==============================================================================

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Union

from order_desk.models import (
    MAX_AMOUNT,
    Cart,
    CartSelection,
    MultiCart,
    Order,
    Product,
    SingleCart,
    make_cart,
    money_to_json,
    to_decimal,
)
from order_desk.services.pricing_service import clamp_quantity

logger = logging.getLogger(__name__)

# Precio mostrado para productos que ya no existen en el catálogo
FALLBACK_PRICE = Decimal('1000')

# Origen del precio de cada línea decodificada
PRICE_STORED = 'stored'
PRICE_CATALOG = 'catalog'
PRICE_FALLBACK = 'fallback'

# Estrategia usada para decodificar
STRATEGY_SINGLE = 'single'
STRATEGY_NOTES_PRODUCTS = 'notes.products'
STRATEGY_NOTES_QUANTITIES = 'notes.quantities'
STRATEGY_QUANTITY_JSON = 'quantity'
STRATEGY_NAMES = 'names'

CatalogEntry = Union[Product, Mapping[str, Any]]


@dataclass(frozen=True)
class DecodedItem:
    """Línea de un pedido lista para mostrar."""
    product_id: str
    name: str
    quantity: int
    unit_price: Decimal
    price_source: str

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.product_id,
            'name': self.name,
            'quantity': self.quantity,
            'price': money_to_json(self.unit_price),
            'lineTotal': money_to_json(self.line_total),
            'priceSource': self.price_source,
        }


@dataclass
class DecodedCart:
    """Resultado de decodificar un pedido."""
    items: List[DecodedItem] = field(default_factory=list)
    is_multi: bool = False
    strategy: str = STRATEGY_SINGLE

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal('0'))

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'items': [item.to_dict() for item in self.items],
            'isMulti': self.is_multi,
            'strategy': self.strategy,
            'subtotal': money_to_json(self.subtotal),
            'totalQuantity': self.total_quantity,
        }


# ==============================================================================
# UTILIDADES INTERNAS
# ==============================================================================

def _entry_name(entry: CatalogEntry) -> str:
    if isinstance(entry, Product):
        return entry.name
    return str(entry.get('name', ''))


def _entry_price(entry: CatalogEntry) -> Decimal:
    if isinstance(entry, Product):
        return entry.price
    return to_decimal(entry.get('price'))


class _CatalogIndex:
    """Búsqueda de productos por id y por nombre."""

    def __init__(self, catalog: Optional[Mapping[str, CatalogEntry]]):
        self.by_id = {str(k): v for k, v in (catalog or {}).items()}
        self.by_name = {}
        for entry in self.by_id.values():
            name = _entry_name(entry).strip().lower()
            if name:
                self.by_name.setdefault(name, entry)

    def find(self, product_id: Any = None, name: Any = None) -> Optional[CatalogEntry]:
        if product_id not in (None, ''):
            entry = self.by_id.get(str(product_id))
            if entry is not None:
                return entry
        if name:
            return self.by_name.get(str(name).strip().lower())
        return None

    def price_for(self, product_id: Any = None, name: Any = None):
        """(precio, origen) desde catálogo o fallback."""
        entry = self.find(product_id, name)
        if entry is None:
            return FALLBACK_PRICE, PRICE_FALLBACK
        return _entry_price(entry), PRICE_CATALOG


def _load_json(value: Any) -> Any:
    """Parsea un string JSON; retorna None si falla. Listas/dicts pasan tal cual."""
    if isinstance(value, (list, dict)):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return json.loads(value)
    except (ValueError, TypeError):
        return None


def _split_csv(value: Any) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in str(value).split(',') if part.strip()]


def is_multi_product(order: Order) -> bool:
    """Un pedido es multi-producto si product_id o product_name tienen coma."""
    return order.is_multi_product


# ==============================================================================
# CODIFICACIÓN
# ==============================================================================

def encode_cart(cart: Cart, catalog: Mapping[str, CatalogEntry]) -> Dict[str, Any]:
    """
    Convierte un carrito lógico a los campos planos del pedido.

    Args:
        cart: SingleCart o MultiCart
        catalog: Productos por id (para nombres y precios del momento)

    Returns:
        Dict con product_id, product_name, quantity y notes
        (notes es None para pedidos de un solo producto)
    """
    index = _CatalogIndex(catalog)
    selections = [
        CartSelection(str(s.product_id), clamp_quantity(s.quantity))
        for s in cart.selections
    ]
    cart = make_cart(selections) if selections else cart

    if isinstance(cart, SingleCart):
        entry = index.find(cart.product_id)
        return {
            'product_id': cart.product_id,
            'product_name': _entry_name(entry) if entry is not None else cart.product_id,
            'quantity': clamp_quantity(cart.quantity),
            'notes': None,
        }

    ids = []
    names = []
    quantities = []
    products = []
    for selection in cart.selections:
        entry = index.find(selection.product_id)
        name = _entry_name(entry) if entry is not None else selection.product_id
        price, _ = index.price_for(selection.product_id)
        ids.append(selection.product_id)
        names.append(name)
        quantities.append({'id': selection.product_id, 'quantity': selection.quantity})
        products.append({
            'id': selection.product_id,
            'name': name,
            'quantity': selection.quantity,
            'price': money_to_json(price),
        })

    notes = {
        'product_ids': ids,
        'quantities': quantities,
        'products': products,
    }
    return {
        'product_id': ','.join(ids),
        'product_name': ','.join(names),
        'quantity': json.dumps(quantities),
        'notes': json.dumps(notes, ensure_ascii=False),
    }


# ==============================================================================
# DECODIFICACIÓN
# ==============================================================================

def _from_notes_products(notes: Any, index: _CatalogIndex) -> List[DecodedItem]:
    """Estrategia 1: notes.products con precio guardado."""
    if not isinstance(notes, dict):
        return []
    products = notes.get('products')
    if not isinstance(products, list) or not products:
        return []
    items = []
    for raw in products:
        if not isinstance(raw, dict):
            continue
        product_id = raw.get('id', raw.get('product_id'))
        entry = index.find(product_id, raw.get('name'))
        name = raw.get('name') or (_entry_name(entry) if entry is not None else '')
        stored = to_decimal(raw.get('price'), None)
        if stored is not None and 0 <= stored <= MAX_AMOUNT:
            price, source = stored, PRICE_STORED
        else:
            price, source = index.price_for(product_id, name)
        if product_id in (None, '') and entry is not None:
            product_id = entry.id if isinstance(entry, Product) else entry.get('id')
        items.append(DecodedItem(
            product_id=str(product_id if product_id not in (None, '') else name),
            name=str(name or product_id),
            quantity=clamp_quantity(raw.get('quantity', 1)),
            unit_price=price,
            price_source=source,
        ))
    return items


def _from_id_quantities(entries: Any, index: _CatalogIndex,
                        fallback_names: List[str]) -> List[DecodedItem]:
    """Lista [{id, quantity}] cruzada con el catálogo vigente."""
    if not isinstance(entries, list) or not entries:
        return []
    items = []
    for position, raw in enumerate(entries):
        if not isinstance(raw, dict):
            continue
        product_id = raw.get('id', raw.get('productId', raw.get('product_id')))
        if product_id in (None, ''):
            continue
        entry = index.find(product_id)
        if entry is not None:
            name = _entry_name(entry)
        elif position < len(fallback_names):
            name = fallback_names[position]
        else:
            name = str(product_id)
        price, source = index.price_for(product_id)
        items.append(DecodedItem(
            product_id=str(product_id),
            name=name,
            quantity=clamp_quantity(raw.get('quantity', 1)),
            unit_price=price,
            price_source=source,
        ))
    return items


def _from_names(order: Order, index: _CatalogIndex) -> List[DecodedItem]:
    """Estrategia 4: 1 unidad por cada producto nombrado."""
    names = _split_csv(order.product_name)
    ids = _split_csv(order.product_id)
    if not names:
        names = list(ids)
    aligned_ids = ids if len(ids) == len(names) else [None] * len(names)
    items = []
    for product_id, name in zip(aligned_ids, names):
        price, source = index.price_for(product_id, name)
        items.append(DecodedItem(
            product_id=str(product_id or name),
            name=name,
            quantity=1,
            unit_price=price,
            price_source=source,
        ))
    return items


def _decode_single(order: Order, index: _CatalogIndex) -> DecodedCart:
    quantity = order.quantity
    if isinstance(quantity, str):
        parsed = _load_json(quantity)
        if isinstance(parsed, list) and parsed and isinstance(parsed[0], dict):
            quantity = parsed[0].get('quantity', 1)
        elif isinstance(parsed, (int, float)):
            quantity = parsed
    entry = index.find(order.product_id, order.product_name)
    price, source = index.price_for(order.product_id, order.product_name)
    name = order.product_name or (_entry_name(entry) if entry is not None else order.product_id)
    item = DecodedItem(
        product_id=str(order.product_id or name),
        name=name,
        quantity=clamp_quantity(quantity),
        unit_price=price,
        price_source=source,
    )
    return DecodedCart(items=[item], is_multi=False, strategy=STRATEGY_SINGLE)


def decode_order(order: Union[Order, Mapping[str, Any]],
                 catalog: Optional[Mapping[str, CatalogEntry]] = None) -> DecodedCart:
    """
    Reconstruye las líneas de un pedido para mostrarlo.

    Orden de estrategias para pedidos multi-producto:
        1. notes.products (precio guardado al crear el pedido)
        2. notes.quantities [{id, quantity}] + precio del catálogo
        3. el campo quantity parseado como JSON
        4. 1 unidad por cada nombre en product_name

    Args:
        order: Order o dict con el formato de almacenamiento
        catalog: Productos vigentes por id (opcional)

    Returns:
        DecodedCart; nunca lanza excepciones
    """
    if not isinstance(order, Order):
        try:
            order = Order.from_dict(dict(order))
        except (TypeError, ValueError, AttributeError):
            logger.warning("Pedido ilegible, se decodifica vacío")
            return DecodedCart()

    index = _CatalogIndex(catalog)
    if not order.is_multi_product:
        return _decode_single(order, index)

    names = _split_csv(order.product_name)
    notes = _load_json(order.notes)

    items = _from_notes_products(notes, index)
    if items:
        return DecodedCart(items=items, is_multi=True, strategy=STRATEGY_NOTES_PRODUCTS)

    if isinstance(notes, dict):
        items = _from_id_quantities(_load_json(notes.get('quantities')), index, names)
        if items:
            return DecodedCart(items=items, is_multi=True, strategy=STRATEGY_NOTES_QUANTITIES)

    items = _from_id_quantities(_load_json(order.quantity), index, names)
    if items:
        return DecodedCart(items=items, is_multi=True, strategy=STRATEGY_QUANTITY_JSON)

    return DecodedCart(items=_from_names(order, index), is_multi=True, strategy=STRATEGY_NAMES)


def to_cart(order: Union[Order, Mapping[str, Any]],
            catalog: Optional[Mapping[str, CatalogEntry]] = None) -> Cart:
    """Reconstruye el carrito lógico (SingleCart / MultiCart) de un pedido."""
    decoded = decode_order(order, catalog)
    selections = [CartSelection(item.product_id, item.quantity) for item in decoded.items]
    if not decoded.is_multi and selections:
        return SingleCart(selections[0].product_id, selections[0].quantity)
    return MultiCart(tuple(selections))


def display_quantity(order: Union[Order, Mapping[str, Any]]) -> int:
    """Cantidad total de unidades para mostrar en tablas."""
    return decode_order(order).total_quantity
