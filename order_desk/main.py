# ==============================================================================
# ORDER DESK - API de pedidos (Flask)
# ==============================================================================
# Rutas de la API REST consumida por:
#   - el formulario público de pedidos y consultas
#   - el panel admin (pedidos, productos, courier, analítica, ajustes)
#   - el portal del courier
#
# Las rutas solo traducen request → service → response.
# Toda la lógica vive en services/.
# ==============================================================================

import logging
import os
from datetime import datetime, timezone
from functools import wraps

from flask import Blueprint, Flask, Response, current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from order_desk.app_container import AppContainer, DEFAULT_DATA_DIR, get_container
from order_desk.performance_logger import init_profiling
from order_desk.services.pricing_service import quote

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN
# ═══════════════════════════════════════════════════════════════════════════════
# Variables de entorno:
#   ORDER_DESK_SECRET_KEY     → clave para firmar tokens (obligatoria en producción)
#   ORDER_DESK_DATA_DIR       → carpeta de los JSON de datos
#   ORDER_DESK_PRODUCTION     → "1"/"true" = sin datos ni usuarios de prueba
#   ORDER_DESK_TOKEN_MAX_AGE  → validez del token en segundos (24h por defecto)

_DEFAULT_SECRET = "order_desk_dev_secret_key_change_in_production"


def _env_flag(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


PRODUCTION_MODE = _env_flag('ORDER_DESK_PRODUCTION')


def load_config():
    """Configuración base leída del entorno."""
    secret = os.environ.get('ORDER_DESK_SECRET_KEY')
    if PRODUCTION_MODE and not secret:
        logger.warning("PRODUCTION_MODE activo sin ORDER_DESK_SECRET_KEY definida")
    try:
        token_max_age = int(os.environ.get('ORDER_DESK_TOKEN_MAX_AGE', 24 * 60 * 60))
    except ValueError:
        token_max_age = 24 * 60 * 60
    data_dir = os.environ.get('ORDER_DESK_DATA_DIR') or DEFAULT_DATA_DIR
    return {
        'SECRET_KEY': secret or _DEFAULT_SECRET,
        'DATA_DIR': data_dir,
        'LOGS_DIR': os.path.join(data_dir, 'logs'),
        'PRODUCTION_MODE': PRODUCTION_MODE,
        'TOKEN_MAX_AGE': token_max_age,
        'SEED_SAMPLE_DATA': not PRODUCTION_MODE,
        'MAX_CONTENT_LENGTH': 1 * 1024 * 1024,  # 1 MB
        'JSON_SORT_KEYS': False,
    }


# ═══════════════════════════════════════════════════════════════════════════════
# RESPUESTAS
# ═══════════════════════════════════════════════════════════════════════════════

def _container() -> AppContainer:
    return current_app.extensions['order_desk']


def ok(data=None, status=200, **extra):
    """Respuesta exitosa {success: true, data, ...}."""
    body = {'success': True}
    if data is not None:
        body['data'] = data
    body.update(extra)
    return jsonify(body), status


def fail(message, status=400):
    """Respuesta de error {success: false, message}."""
    return jsonify({'success': False, 'message': message}), status


def fail_from(result, default_status=400):
    """Traduce un resultado {'ok': False, ...} de un servicio a respuesta HTTP."""
    if result.get('not_found'):
        return fail(result.get('error', 'No encontrado'), 404)
    if result.get('forbidden'):
        return fail(result.get('error', 'Permiso denegado'), 403)
    return fail(result.get('error', 'Solicitud inválida'), default_status)


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _current_email():
    return (getattr(g, 'current_user', None) or {}).get('email', '')


# ═══════════════════════════════════════════════════════════════════════════════
# AUTENTICACIÓN
# ═══════════════════════════════════════════════════════════════════════════════

def token_required(f):
    """Exige un token válido en Authorization: Bearer <token>."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        header = request.headers.get('Authorization', '')
        token = header[7:].strip() if header.startswith('Bearer ') else ''
        payload = _container().user_service.verify_token(token)
        if payload is None:
            return fail('No autorizado', 401)
        g.current_user = payload
        return f(*args, **kwargs)
    return wrapper


def role_required(*roles):
    """Exige token válido y uno de los roles dados (403 si el rol no corresponde)."""
    def deco(f):
        @wraps(f)
        @token_required
        def wrapper(*args, **kwargs):
            if g.current_user.get('role') not in roles:
                return fail('Permiso denegado', 403)
            return f(*args, **kwargs)
        return wrapper
    return deco


api = Blueprint('api', __name__, url_prefix='/api')


@api.route('/health', methods=['GET'])
def health():
    return jsonify({
        'success': True,
        'message': 'Server is running',
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })


@api.route('/auth/login', methods=['POST'])
def login():
    body = _json_body()
    email = (body.get('email') or '').strip()
    password = body.get('password') or ''
    if not email or not password:
        return fail('Email y contraseña requeridos', 400)
    result = _container().user_service.authenticate(email, password)
    if not result['success']:
        return jsonify(result), 401
    return jsonify(result)


# ═══════════════════════════════════════════════════════════════════════════════
# PEDIDOS
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/orders', methods=['POST'])
def create_order():
    """Formulario público: no requiere token."""
    result = _container().order_service.create_order(_json_body())
    if not result['ok']:
        return fail_from(result)
    return ok(result['order'], 201, order_id=result['order_id'], pricing=result['pricing'])


@api.route('/orders/quote', methods=['POST'])
def quote_order():
    """Recalcula totales del carrito sin crear el pedido."""
    container = _container()
    body = _json_body()
    data = quote(
        body.get('products', []),
        container.product_service.catalog(),
        container.settings_service.load_delivery(),
    )
    return ok(data)


def _list_args():
    return {
        'page': request.args.get('page', 1),
        'limit': request.args.get('limit', 10),
        'status': request.args.get('status') or None,
        'search': request.args.get('search') or None,
    }


def _paginated(result):
    return ok(result['orders'], pagination={
        'total': result['total'],
        'page': result['page'],
        'limit': result['limit'],
        'pages': result['pages'],
    })


@api.route('/orders', methods=['GET'])
@role_required('admin')
def list_orders():
    return _paginated(_container().order_service.list_orders(**_list_args()))


@api.route('/orders/export', methods=['GET'])
@role_required('admin')
def export_orders():
    container = _container()
    args = _list_args()
    orders = container.order_service.filter_orders(args['status'], args['search'])
    csv_text = container.export_service.orders_csv(orders)
    return Response(
        csv_text,
        mimetype='text/csv',
        headers={'Content-Disposition': 'attachment; filename=orders.csv'},
    )


@api.route('/orders/<order_id>', methods=['GET'])
@role_required('admin', 'courier')
def get_order(order_id):
    details = _container().order_service.get_order_details(order_id, g.current_user['role'])
    if details is None:
        return fail('Pedido no encontrado', 404)
    return ok(details)


def _change_status(order_id):
    body = _json_body()
    new_status = body.get('status')
    if not new_status:
        return fail('El estado es requerido', 400)
    result = _container().order_service.change_status(
        order_id, new_status, _current_email(), g.current_user['role']
    )
    if not result['ok']:
        return fail_from(result)
    return ok(result['order'], changed=result['changed'], action=result['action'])


@api.route('/orders/<order_id>/status', methods=['PUT'])
@role_required('admin')
def update_order_status(order_id):
    return _change_status(order_id)


@api.route('/orders/<order_id>', methods=['DELETE'])
@role_required('admin')
def delete_order(order_id):
    result = _container().order_service.delete_order(order_id, _current_email())
    if not result['ok']:
        return fail_from(result)
    return ok(message='Pedido eliminado')


# ═══════════════════════════════════════════════════════════════════════════════
# COURIER
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/courier/orders', methods=['GET'])
@role_required('admin', 'courier')
def courier_orders():
    return _paginated(_container().order_service.list_courier_orders(**_list_args()))


@api.route('/courier/stats', methods=['GET'])
@role_required('admin', 'courier')
def courier_stats():
    return ok(_container().order_service.courier_stats())


@api.route('/courier/export', methods=['GET'])
@role_required('admin', 'courier')
def export_courier_orders():
    container = _container()
    args = _list_args()
    orders = container.order_service.filter_orders(args['status'], args['search'], courier_only=True)
    csv_text = container.export_service.courier_csv(orders)
    return Response(
        csv_text,
        mimetype='text/csv',
        headers={'Content-Disposition': 'attachment; filename=courier_orders.csv'},
    )


@api.route('/courier/<order_id>/status', methods=['PUT'])
@role_required('admin', 'courier')
def update_courier_status(order_id):
    return _change_status(order_id)


# ═══════════════════════════════════════════════════════════════════════════════
# PRODUCTOS
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/products', methods=['GET'])
def list_products():
    """Público: el formulario de pedidos solo ve los disponibles."""
    only_available = request.args.get('available') in ('1', 'true')
    return ok(_container().product_service.list_products(only_available=only_available))


@api.route('/products/<product_id>', methods=['GET'])
def get_product(product_id):
    product = _container().product_service.get_product(product_id)
    if product is None:
        return fail('Producto no encontrado', 404)
    return ok(product.to_dict())


@api.route('/products', methods=['POST'])
@role_required('admin')
def create_product():
    result = _container().product_service.create_product(_json_body(), _current_email())
    if not result['ok']:
        return fail_from(result)
    return ok(result['product'], 201)


@api.route('/products/<product_id>', methods=['PUT'])
@role_required('admin')
def update_product(product_id):
    result = _container().product_service.update_product(product_id, _json_body(), _current_email())
    if not result['ok']:
        return fail_from(result)
    return ok(result['product'])


@api.route('/products/<product_id>', methods=['DELETE'])
@role_required('admin')
def delete_product(product_id):
    result = _container().product_service.delete_product(product_id, _current_email())
    if not result['ok']:
        return fail_from(result)
    return ok(message='Producto eliminado')


# ═══════════════════════════════════════════════════════════════════════════════
# CONSULTAS
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/inquiries', methods=['POST'])
def create_inquiry():
    result = _container().inquiry_service.create_inquiry(_json_body())
    if not result['ok']:
        return fail_from(result)
    return ok(result['inquiry'], 201)


@api.route('/inquiries', methods=['GET'])
@role_required('admin')
def list_inquiries():
    return ok(_container().inquiry_service.list_inquiries())


# ═══════════════════════════════════════════════════════════════════════════════
# DASHBOARD / ANALÍTICA / AUDITORÍA
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/dashboard/stats', methods=['GET'])
@role_required('admin')
def dashboard_stats():
    stats = _container().order_service.dashboard_stats()
    return jsonify({'success': True, **stats})


@api.route('/analytics', methods=['GET'])
@role_required('admin')
def analytics():
    try:
        days = min(90, max(1, int(request.args.get('days', 7))))
    except ValueError:
        days = 7
    return ok(_container().order_service.analytics(days=days))


@api.route('/audit', methods=['GET'])
@role_required('admin')
def audit_logs():
    try:
        limit = int(request.args.get('limit', 100))
    except ValueError:
        limit = 100
    return ok(_container().audit_service.get_logs(request.args.get('type'), limit))


# ═══════════════════════════════════════════════════════════════════════════════
# AJUSTES
# ═══════════════════════════════════════════════════════════════════════════════

@api.route('/settings/delivery', methods=['GET'])
def get_delivery_settings():
    """Público: el formulario necesita los cargos para mostrar totales."""
    return ok(_container().settings_service.load_delivery().to_dict())


@api.route('/settings/delivery', methods=['PUT'])
@role_required('admin')
def update_delivery_settings():
    result = _container().settings_service.save_delivery(_json_body(), _current_email())
    if not result['ok']:
        return fail_from(result)
    return ok(result['settings'])


@api.route('/settings/time-range', methods=['GET'])
@role_required('admin')
def get_time_range():
    return ok(_container().settings_service.load_time_range().to_dict())


@api.route('/settings/time-range', methods=['PUT'])
@role_required('admin')
def update_time_range():
    result = _container().settings_service.save_time_range(_json_body(), _current_email())
    if not result['ok']:
        return fail_from(result)
    return ok(result['time_range'])


# ═══════════════════════════════════════════════════════════════════════════════
# FÁBRICA DE LA APLICACIÓN
# ═══════════════════════════════════════════════════════════════════════════════

def set_security_headers(response):
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'no-referrer-when-downgrade'
    response.headers['Permissions-Policy'] = 'geolocation=(), microphone=()'
    # HSTS solo con HTTPS real
    if request.is_secure:
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    return response


def handle_http_error(error: HTTPException):
    return fail(error.description or error.name, error.code or 500)


def handle_unexpected_error(error: Exception):
    logger.exception("Error no controlado en %s %s", request.method, request.path)
    return fail('Internal Server Error', 500)


def create_app(config=None):
    """
    Crea la aplicación Flask.

    Args:
        config: Valores que sobrescriben la configuración del entorno
                (DATA_DIR, SECRET_KEY, PRODUCTION_MODE, SEED_SAMPLE_DATA, ...)

    Returns:
        Aplicación Flask lista para servir
    """
    app = Flask(__name__)
    app.config.update(load_config())
    if config:
        app.config.update(config)
        if 'PRODUCTION_MODE' in config and 'SEED_SAMPLE_DATA' not in config:
            app.config['SEED_SAMPLE_DATA'] = not config['PRODUCTION_MODE']
        if 'DATA_DIR' in config and 'LOGS_DIR' not in config:
            app.config['LOGS_DIR'] = os.path.join(config['DATA_DIR'], 'logs')

    AppContainer.reset_instance()
    container = get_container(
        app.config['DATA_DIR'],
        secret_key=app.config['SECRET_KEY'],
        token_max_age=app.config['TOKEN_MAX_AGE'],
    )
    app.extensions['order_desk'] = container

    container.user_service.ensure_default_users(production=app.config['PRODUCTION_MODE'])
    if app.config['SEED_SAMPLE_DATA']:
        container.product_service.seed_sample_products()

    init_profiling(app, logs_dir=app.config['LOGS_DIR'])
    app.register_blueprint(api)
    app.after_request(set_security_headers)
    app.register_error_handler(HTTPException, handle_http_error)
    app.register_error_handler(Exception, handle_unexpected_error)

    logger.info("Order Desk iniciado (datos: %s, producción: %s)",
                app.config['DATA_DIR'], app.config['PRODUCTION_MODE'])
    return app


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    create_app().run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)),
                     debug=not PRODUCTION_MODE)
