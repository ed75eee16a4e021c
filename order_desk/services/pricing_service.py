# ==============================================================================
# SERVICIO DE PRECIOS - Cálculo de subtotal, envío y recargos
# ==============================================================================
# Reglas de cobro:
#   - Envío: se cobra commonDeliveryCharge si el pedido tiene < 15 unidades;
#     desde 15 unidades el envío es gratis (incentivo por volumen).
#   - Recargo: por cada bloque (redondeado hacia arriba) de 15 unidades por
#     encima de las primeras 15 se suma extraAddOnPrice.
#   - Total = subtotal + envío + recargo
#
# Las funciones de este módulo son puras: no leen configuración global ni
# tocan repositorios. La configuración llega como argumento explícito.
# ==============================================================================

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from order_desk.models import (
    CartSelection,
    DeliverySettings,
    Product,
    to_decimal,
    money_to_json,
)


# Umbral desde el cual el envío es gratis
BULK_THRESHOLD = 15
# Tamaño del bloque que genera un recargo adicional
SURCHARGE_BLOCK = 15
# Máximo de unidades por producto en un pedido
MAX_QUANTITY = 10000

ZERO = Decimal('0')


def round_money(value: Decimal) -> Decimal:
    """Redondea un monto a 2 decimales (ROUND_HALF_UP)."""
    return value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    """Resultado del cálculo de precios de un carrito."""
    subtotal: Decimal = ZERO
    delivery_total: Decimal = ZERO
    extra_charge: Decimal = ZERO
    grand_total: Decimal = ZERO
    total_quantity: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'subtotal': money_to_json(self.subtotal),
            'deliveryTotal': money_to_json(self.delivery_total),
            'extraCharge': money_to_json(self.extra_charge),
            'grandTotal': money_to_json(self.grand_total),
            'totalQuantity': self.total_quantity,
        }


def clamp_quantity(quantity: Any) -> int:
    """
    Cantidad entre 1 y MAX_QUANTITY. Valores no numéricos (o infinitos)
    cuentan como 1. Nunca lanza excepciones.
    """
    try:
        value = int(quantity)
    except (TypeError, ValueError, OverflowError):
        return 1
    return min(max(value, 1), MAX_QUANTITY)


def quantity_exceeds_limit(quantity: Any) -> bool:
    """True si la cantidad supera MAX_QUANTITY (incluye infinito)."""
    try:
        return int(quantity) > MAX_QUANTITY
    except OverflowError:
        return True
    except (TypeError, ValueError):
        return False


def delivery_charge_for(total_quantity: int, settings: DeliverySettings) -> Decimal:
    """Cargo de envío según la cantidad total."""
    if total_quantity < BULK_THRESHOLD:
        return settings.common_delivery_charge
    return ZERO


def extra_blocks_for(total_quantity: int) -> int:
    """
    Cantidad de bloques de recargo.

    extraUnits = ceil(max(0, q - 15) / 15)
    q=15 → 0, q=16 → 1, q=30 → 1, q=31 → 2
    """
    over = max(0, total_quantity - BULK_THRESHOLD)
    return math.ceil(over / SURCHARGE_BLOCK)


def extra_charge_for(total_quantity: int, settings: DeliverySettings) -> Decimal:
    return extra_blocks_for(total_quantity) * settings.extra_addon_price


def _unit_price(product: Union[Product, Mapping[str, Any]]) -> Decimal:
    if isinstance(product, Product):
        return product.price
    return to_decimal(product.get('price'))


def calculate_totals(
    selections: Iterable[CartSelection],
    catalog: Mapping[str, Union[Product, Mapping[str, Any]]],
    settings: Optional[DeliverySettings] = None
) -> PriceBreakdown:
    """
    Calcula el desglose de precios de un carrito.

    Args:
        selections: Selecciones {product_id, quantity}
        catalog: Productos indexados por id (Product o dict)
        settings: Configuración de entrega (defaults si es None)

    Returns:
        PriceBreakdown con subtotal, envío, recargo, total y cantidad

    Las selecciones con producto desconocido se ignoran. Un carrito vacío
    (o sin productos conocidos) retorna todo en cero.
    """
    settings = settings or DeliverySettings()

    subtotal = ZERO
    total_quantity = 0
    for selection in selections:
        product = catalog.get(str(selection.product_id))
        if product is None:
            continue
        quantity = clamp_quantity(selection.quantity)
        subtotal += _unit_price(product) * quantity
        total_quantity += quantity

    if total_quantity == 0:
        return PriceBreakdown()

    delivery_total = delivery_charge_for(total_quantity, settings)
    extra_charge = extra_charge_for(total_quantity, settings)
    return PriceBreakdown(
        subtotal=round_money(subtotal),
        delivery_total=round_money(delivery_total),
        extra_charge=round_money(extra_charge),
        grand_total=round_money(subtotal + delivery_total + extra_charge),
        total_quantity=total_quantity,
    )


def parse_selections(raw_items: Any) -> List[CartSelection]:
    """
    Convierte una lista de dicts {productId|id|product_id, quantity}
    en CartSelection. Los elementos sin id se descartan.
    """
    selections = []
    if not isinstance(raw_items, list):
        return selections
    for item in raw_items:
        if not isinstance(item, dict):
            continue
        product_id = item.get('productId', item.get('product_id', item.get('id')))
        if product_id in (None, ''):
            continue
        selections.append(CartSelection(str(product_id), clamp_quantity(item.get('quantity', 1))))
    return selections


def quote(
    raw_items: Any,
    catalog: Mapping[str, Union[Product, Mapping[str, Any]]],
    settings: Optional[DeliverySettings] = None
) -> Dict[str, Any]:
    """
    Cotiza un carrito recibido desde la UI sin crear el pedido.

    Returns:
        Diccionario serializable con el desglose y las líneas conocidas
    """
    selections = parse_selections(raw_items)
    breakdown = calculate_totals(selections, catalog, settings)
    lines = []
    for selection in selections:
        product = catalog.get(selection.product_id)
        if product is None:
            continue
        price = _unit_price(product)
        quantity = clamp_quantity(selection.quantity)
        lines.append({
            'productId': selection.product_id,
            'quantity': quantity,
            'unitPrice': money_to_json(price),
            'lineTotal': money_to_json(price * quantity),
        })
    result = breakdown.to_dict()
    result['items'] = lines
    return result
