import os
from decimal import Decimal

from itsdangerous import URLSafeTimedSerializer

from order_desk.models import DeliverySettings, TimeRange
from order_desk.repositories import OrderRepository, SettingsRepository, UserRepository
from order_desk.services import SettingsService, UserService


# ==============================================================================
# CONFIGURACIÓN
# ==============================================================================

def test_delivery_defaults(tmp_path):
    service = SettingsService(SettingsRepository(str(tmp_path)))
    assert service.load_delivery() == DeliverySettings()


def test_save_delivery_is_partial(tmp_path):
    service = SettingsService(SettingsRepository(str(tmp_path)))
    result = service.save_delivery({'extraAddOnPrice': '750.5', 'editMode': True})
    assert result['ok']
    loaded = service.load_delivery()
    assert loaded.common_delivery_charge == Decimal('350')
    assert loaded.extra_addon_price == Decimal('750.5')
    assert loaded.edit_mode is True


def test_save_delivery_rejects_invalid_values(tmp_path):
    service = SettingsService(SettingsRepository(str(tmp_path)))
    assert service.save_delivery({'commonDeliveryCharge': -5})['ok'] is False
    assert service.save_delivery({'commonDeliveryCharge': 'abc'})['ok'] is False
    assert service.load_delivery() == DeliverySettings()


def test_stored_negative_values_fall_back_to_defaults():
    settings = DeliverySettings.from_dict({'commonDeliveryCharge': -1, 'extraAddOnPrice': 'x', 'editMode': 'true'})
    assert settings.common_delivery_charge == Decimal('350')
    assert settings.extra_addon_price == Decimal('1000')
    assert settings.edit_mode is True


def test_invalid_stored_time_range_uses_default(tmp_path):
    repo = SettingsRepository(str(tmp_path))
    repo.set_time_range({'startTime': '25:99', 'endTime': '06:00', 'startPeriod': 'AM', 'endPeriod': 'PM'})
    assert SettingsService(repo).load_time_range() == TimeRange()


def test_time_range_minutes():
    assert TimeRange().start_minutes == 9 * 60
    assert TimeRange().end_minutes == 18 * 60
    assert TimeRange.to_minutes('12:15', 'AM') == 15
    assert TimeRange.to_minutes('12:00', 'PM') == 720


def test_settings_changes_are_audited(services):
    services.settings_service.save_delivery({'commonDeliveryCharge': 200}, user='admin@orderdesk.local')
    logs = services.audit_service.get_logs(log_type='SISTEMA')
    assert logs[0]['related_id'] == 'delivery'
    assert logs[0]['user'] == 'admin@orderdesk.local'


# ==============================================================================
# REPOSITORIOS
# ==============================================================================

def test_corrupt_json_reads_as_empty(tmp_path):
    repo = OrderRepository(str(tmp_path))
    with open(os.path.join(str(tmp_path), 'orders.json'), 'w', encoding='utf-8') as f:
        f.write('{not valid json')
    assert repo.get_all() == []
    assert repo.next_internal_id() == '1'


def test_order_code_sequence_per_day(tmp_path):
    from datetime import datetime

    repo = OrderRepository(str(tmp_path))
    day = datetime(2024, 5, 10)
    assert repo.next_order_code(day) == 'ORD20240510001'
    repo.add_order({'id': '1', 'order_id': 'ORD20240510007'})
    repo.add_order({'id': '2', 'order_id': 'ORD20240509050'})
    assert repo.next_order_code(day) == 'ORD20240510008'
    assert repo.next_order_code(datetime(2024, 5, 11)) == 'ORD20240511001'


# ==============================================================================
# USUARIOS Y TOKENS
# ==============================================================================

def _user_service(tmp_path, **kwargs):
    service = UserService(UserRepository(str(tmp_path)), secret_key='test-secret', **kwargs)
    service.ensure_default_users(production=False)
    return service


def test_default_users_created_once(tmp_path):
    service = _user_service(tmp_path)
    assert service.ensure_default_users(production=False) == 0
    assert service.get_user('ADMIN@orderdesk.local').role.value == 'admin'
    assert service.get_user('courier@orderdesk.local').role.value == 'courier'


def test_production_creates_single_admin(tmp_path):
    service = UserService(UserRepository(str(tmp_path)), secret_key='s')
    assert service.ensure_default_users(production=True) == 1
    assert service.get_user('courier@orderdesk.local') is None


def test_authenticate_and_verify(tmp_path):
    service = _user_service(tmp_path)
    result = service.authenticate('admin@orderdesk.local', 'admin123')
    assert result['success'] is True
    payload = service.verify_token(result['token'])
    assert payload['email'] == 'admin@orderdesk.local'
    assert payload['role'] == 'admin'
    assert service.authenticate('admin@orderdesk.local', 'wrong')['success'] is False
    assert service.authenticate('ghost@orderdesk.local', 'admin123')['success'] is False


def test_password_is_hashed(tmp_path):
    service = _user_service(tmp_path)
    stored = service.get_user('admin@orderdesk.local').password_hash
    assert stored != 'admin123'
    assert ':' in stored


def test_token_signed_with_other_key_is_rejected(tmp_path):
    service = _user_service(tmp_path)
    forged = URLSafeTimedSerializer('other', salt=UserService.TOKEN_SALT).dumps(
        {'id': 1, 'email': 'admin@orderdesk.local', 'role': 'admin'}
    )
    assert service.verify_token(forged) is None
    assert service.verify_token('') is None


def test_expired_token_is_rejected(tmp_path):
    service = _user_service(tmp_path, token_max_age=-1)
    token = service.authenticate('courier@orderdesk.local', 'courier123')['token']
    assert service.verify_token(token) is None


def test_token_for_deleted_user_is_rejected(tmp_path):
    repo = UserRepository(str(tmp_path))
    service = UserService(repo, secret_key='test-secret')
    service.create_user('temp@orderdesk.local', 'Temp', 'secret1', 'courier')
    token = service.authenticate('temp@orderdesk.local', 'secret1')['token']
    repo.delete('temp@orderdesk.local')
    assert service.verify_token(token) is None


def test_create_user_validation(tmp_path):
    service = _user_service(tmp_path)
    assert service.create_user('bad-email', 'X', 'secret1')['ok'] is False
    assert service.create_user('new@orderdesk.local', 'X', '123')['ok'] is False
    assert service.create_user('new@orderdesk.local', 'X', 'secret1', role='owner')['ok'] is False
    assert service.create_user('new@orderdesk.local', 'X', 'secret1')['ok'] is True
    assert service.create_user('NEW@orderdesk.local', 'X', 'secret1')['error'] == 'El usuario ya existe'


def test_json_repositories_satisfy_contracts(tmp_path):
    from order_desk.repositories import (
        AuditRepository,
        IAuditRepository,
        IOrderRepository,
        IProductRepository,
        ISettingsRepository,
        IUserRepository,
        ProductRepository,
    )

    base = str(tmp_path)
    assert isinstance(OrderRepository(base), IOrderRepository)
    assert isinstance(ProductRepository(base), IProductRepository)
    assert isinstance(UserRepository(base), IUserRepository)
    assert isinstance(AuditRepository(base), IAuditRepository)
    assert isinstance(SettingsRepository(base), ISettingsRepository)
    assert not isinstance(SettingsRepository(base), IOrderRepository)
