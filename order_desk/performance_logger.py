# ==============================================================================
# SISTEMA DE PROFILING INTERNO
# ==============================================================================
# Mide el tiempo de cada request de la API y de funciones clave.
# Escribe una línea por evento en LOGS_DIR (carpeta logs/ de los datos):
#   - performance.log     → todas las requests (código, ruta, usuario, tiempo)
#   - slow_routes.log     → requests que superan los umbrales
#   - slow_functions.log  → funciones de servicio perfiladas lentas
# Además acumula estadísticas en memoria por función y por regla de ruta.
#
# ACTIVAR/DESACTIVAR: variable ENABLE_PROFILING
# ==============================================================================

import os
import time
import threading
from datetime import datetime
from functools import wraps
from collections import defaultdict

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════

ENABLE_PROFILING = True

# Umbrales de tiempo (en milisegundos)
THRESHOLD_WARNING = 300
THRESHOLD_CRITICAL = 700

# Directorio de logs (init_profiling puede cambiarlo)
LOGS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs')

PERFORMANCE_LOG = 'performance.log'
SLOW_ROUTES_LOG = 'slow_routes.log'
SLOW_FUNCTIONS_LOG = 'slow_functions.log'

# Nombres legibles de las rutas de la API
ROUTE_NAMES = {
    'GET /api/health': 'Estado del servicio',
    'POST /api/auth/login': 'Iniciar sesión',

    'POST /api/orders': 'Crear pedido',
    'POST /api/orders/quote': 'Cotizar carrito',
    'GET /api/orders': 'Ver pedidos',
    'GET /api/orders/export': 'Exportar pedidos CSV',
    'GET /api/orders/<order_id>': 'Ver detalle de pedido',
    'PUT /api/orders/<order_id>/status': 'Cambiar estado de pedido',
    'DELETE /api/orders/<order_id>': 'Eliminar pedido',

    'GET /api/products': 'Ver productos',
    'POST /api/products': 'Crear producto',
    'GET /api/products/<product_id>': 'Ver producto',
    'PUT /api/products/<product_id>': 'Editar producto',
    'DELETE /api/products/<product_id>': 'Eliminar producto',

    'GET /api/courier/orders': 'Ver pedidos del courier',
    'GET /api/courier/stats': 'Ver estadísticas del courier',
    'GET /api/courier/export': 'Exportar hoja de entregas CSV',
    'PUT /api/courier/<order_id>/status': 'Actualizar entrega',

    'POST /api/inquiries': 'Enviar consulta',
    'GET /api/inquiries': 'Ver consultas',

    'GET /api/dashboard/stats': 'Ver panel principal',
    'GET /api/analytics': 'Ver analítica',

    'GET /api/settings/delivery': 'Ver configuración de entrega',
    'PUT /api/settings/delivery': 'Guardar configuración de entrega',
    'GET /api/settings/time-range': 'Ver rango horario',
    'PUT /api/settings/time-range': 'Guardar rango horario',

    'GET /api/audit': 'Ver registro de actividad',
}


# ═══════════════════════════════════════════════════════════════════════════
# ESTADO INTERNO
# ═══════════════════════════════════════════════════════════════════════════

# {etiqueta: {calls, total_time, max_time}}
_function_stats = defaultdict(lambda: {'calls': 0, 'total_time': 0.0, 'max_time': 0.0})
# {"MÉTODO regla": {calls, total_time, max_time, errors}}
_route_stats = defaultdict(lambda: {'calls': 0, 'total_time': 0.0, 'max_time': 0.0, 'errors': 0})
_stats_lock = threading.Lock()
_log_lock = threading.Lock()


def _get_timestamp():
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def _log_path(filename):
    return os.path.join(LOGS_DIR, filename)


def _write_log(filename, content):
    """Agrega contenido a un archivo de log. Un fallo de escritura no afecta la request."""
    try:
        with _log_lock:
            os.makedirs(LOGS_DIR, exist_ok=True)
            with open(_log_path(filename), 'a', encoding='utf-8') as f:
                f.write(content)
    except OSError:
        pass


def _get_route_name(method, path, rule=None):
    """Nombre legible: por path exacto, luego por regla de Flask, si no 'MÉTODO path'."""
    for candidate in (path, rule):
        if candidate and f"{method} {candidate}" in ROUTE_NAMES:
            return ROUTE_NAMES[f"{method} {candidate}"]
    return f"{method} {path}"


def _slow_level(elapsed_ms):
    """'CRITICAL', 'WARNING' o None según los umbrales."""
    if elapsed_ms >= THRESHOLD_CRITICAL:
        return 'CRITICAL'
    if elapsed_ms >= THRESHOLD_WARNING:
        return 'WARNING'
    return None


# ═══════════════════════════════════════════════════════════════════════════
# 1️⃣ PROFILING DE RUTAS
# ═══════════════════════════════════════════════════════════════════════════
# Una línea por request, separada por " | " para poder filtrar con grep:
#   2024-05-10 10:30:00 | 201 | POST /api/orders | Crear pedido | cliente | 12 ms

def _format_line(*fields):
    return ' | '.join(str(f) for f in fields) + '\n'


def log_route_performance(method, path, rule, time_ms, user=None, status_code=None):
    """
    Registra el rendimiento de una ruta en performance.log y acumula
    estadísticas por regla.

    Args:
        method: GET, POST, etc.
        path: Ruta solicitada (/api/orders/12/status)
        rule: Regla de Flask (/api/orders/<order_id>/status)
        time_ms: Tiempo en milisegundos
        user: Email del usuario autenticado (opcional)
        status_code: Código HTTP de la respuesta
    """
    if not ENABLE_PROFILING:
        return

    with _stats_lock:
        stats = _route_stats[f"{method} {rule or path}"]
        _accumulate(stats, time_ms)
        if status_code is not None and status_code >= 500:
            stats['errors'] += 1

    _write_log(PERFORMANCE_LOG, _format_line(
        _get_timestamp(),
        status_code if status_code is not None else '-',
        f"{method} {path}",
        _get_route_name(method, path, rule),
        user or 'cliente',
        f"{time_ms:.0f} ms",
    ))


def log_slow_route(method, path, rule, time_ms, user=None, level='WARNING'):
    """Registra una ruta lenta ('WARNING' > 300ms, 'CRITICAL' > 700ms)."""
    if not ENABLE_PROFILING:
        return

    threshold = THRESHOLD_WARNING if level == 'WARNING' else THRESHOLD_CRITICAL
    _write_log(SLOW_ROUTES_LOG, _format_line(
        _get_timestamp(),
        level,
        f"{method} {path}",
        _get_route_name(method, path, rule),
        user or 'cliente',
        f"{time_ms:.0f} ms > {threshold} ms",
    ))


def init_profiling(app, logs_dir=None):
    """
    Registra hooks before_request/after_request en una app Flask.

    Uso:
        from order_desk.performance_logger import init_profiling
        init_profiling(app, logs_dir='/var/log/order_desk')
    """
    global LOGS_DIR
    if logs_dir:
        LOGS_DIR = logs_dir
    if not ENABLE_PROFILING:
        return

    @app.before_request
    def _start_timer():
        from flask import g
        g.start_time = time.perf_counter()

    @app.after_request
    def _log_request(response):
        from flask import g, request

        if not hasattr(g, 'start_time'):
            return response

        elapsed = (time.perf_counter() - g.start_time) * 1000
        method = request.method
        path = request.path
        rule = str(request.url_rule) if request.url_rule else path
        current_user = getattr(g, 'current_user', None) or {}
        user = current_user.get('email')

        log_route_performance(method, path, rule, elapsed, user, response.status_code)
        level = _slow_level(elapsed)
        if level:
            log_slow_route(method, path, rule, elapsed, user, level)
        return response


# ═══════════════════════════════════════════════════════════════════════════
# 2️⃣ DECORADOR PARA FUNCIONES CLAVE
# ═══════════════════════════════════════════════════════════════════════════

def profile_function(func=None, name=None):
    """
    Decorador para medir funciones del servicio (llamadas, promedio, máximo).

    Uso:
        @profile_function
        def recalcular(): ...

        @profile_function(name="Crear pedido")
        def create_order(...): ...
    """
    def decorator(fn):
        if not ENABLE_PROFILING:
            return fn

        label = name or fn.__name__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000
                with _stats_lock:
                    _accumulate(_function_stats[label], elapsed_ms)
                level = _slow_level(elapsed_ms)
                if level:
                    _write_log(SLOW_FUNCTIONS_LOG, _format_line(
                        _get_timestamp(), level, label, f"{elapsed_ms:.0f} ms",
                    ))

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator


# ═══════════════════════════════════════════════════════════════════════════
# 3️⃣ REPORTE DE ESTADÍSTICAS
# ═══════════════════════════════════════════════════════════════════════════

def _accumulate(stats, elapsed_ms):
    stats['calls'] += 1
    stats['total_time'] += elapsed_ms
    stats['max_time'] = max(stats['max_time'], elapsed_ms)


def _summary(table, extra_keys=()):
    result = {}
    for key, stats in table.items():
        calls = stats['calls']
        entry = {
            'calls': calls,
            'avg_time': round(stats['total_time'] / calls, 2) if calls else 0,
            'max_time': round(stats['max_time'], 2),
        }
        for extra in extra_keys:
            entry[extra] = stats[extra]
        result[key] = entry
    return result


def get_function_stats():
    """{nombre: {calls, avg_time, max_time}} de las funciones perfiladas."""
    with _stats_lock:
        return _summary(_function_stats)


def get_route_stats():
    """{"MÉTODO regla": {calls, avg_time, max_time, errors}} (errors = respuestas 5xx)."""
    with _stats_lock:
        return _summary(_route_stats, extra_keys=('errors',))


def reset_stats():
    with _stats_lock:
        _function_stats.clear()
        _route_stats.clear()


__all__ = [
    'ENABLE_PROFILING',
    'init_profiling',
    'profile_function',
    'get_function_stats',
    'get_route_stats',
    'reset_stats',
]
