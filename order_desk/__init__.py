# ==============================================================================
# ORDER DESK - Gestión de pedidos para tienda de un solo producto
# ==============================================================================

__version__ = '1.0.0'
