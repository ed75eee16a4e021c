import json
from datetime import datetime

import pytest


def _stored(order_id, status, created_at, total=1000, **extra):
    data = {
        'id': order_id,
        'order_id': f'ORD2024050{order_id}',
        'fullName': f'Cliente {order_id}',
        'address': 'Calle 1',
        'mobile': '0771234567',
        'product_id': '3',
        'product_name': 'NIRVAAN 1KG',
        'quantity': 1,
        'status': status,
        'total_amount': total,
        'createdAt': created_at,
    }
    data.update(extra)
    return data


# ==============================================================================
# CREACIÓN
# ==============================================================================

def test_create_single_product_order(services, order_payload):
    result = services.order_service.create_order(order_payload())
    assert result['ok'], result
    order = result['order']
    assert order['status'] == 'received'
    assert order['product_id'] == '3'
    assert order['quantity'] == 2
    assert order['total_amount'] == 5350.0
    assert result['pricing']['grandTotal'] == 5350.0
    assert services.order_repo.get_order(result['order_id'])['fullName'] == 'Nimal Perera'


def test_create_multi_product_order(services, order_payload):
    payload = order_payload(products=[
        {'productId': '1', 'quantity': 1},
        {'productId': '3', 'quantity': 2},
    ])
    result = services.order_service.create_order(payload)
    assert result['ok'], result
    order = result['order']
    assert order['product_id'] == '1,3'
    assert order['total_amount'] == 15350.0
    assert json.loads(order['quantity']) == [{'id': '1', 'quantity': 1}, {'id': '3', 'quantity': 2}]
    assert json.loads(order['notes'])['products'][0]['price'] == 10000.0


def test_create_order_with_legacy_single_fields(services, order_payload):
    payload = order_payload()
    del payload['products']
    payload.update({'product_id': '1', 'quantity': 20})
    result = services.order_service.create_order(payload)
    assert result['ok'], result
    # 20 unidades: envío gratis y un bloque de recargo
    assert result['pricing'] == {
        'subtotal': 200000.0,
        'deliveryTotal': 0.0,
        'extraCharge': 1000.0,
        'grandTotal': 201000.0,
        'totalQuantity': 20,
    }


def test_create_order_uses_saved_delivery_settings(services, order_payload):
    services.settings_service.save_delivery({'commonDeliveryCharge': 500})
    result = services.order_service.create_order(order_payload())
    assert result['order']['total_amount'] == 5500.0


@pytest.mark.parametrize('overrides, fragment', [
    ({'fullName': ''}, 'nombre'),
    ({'address': '  '}, 'dirección'),
    ({'mobile': ''}, 'teléfono'),
    ({'mobile': 'abc123'}, 'Teléfono inválido'),
    ({'mobile2': '12'}, 'Teléfono inválido'),
    ({'products': []}, 'al menos un producto'),
    ({'products': [{'productId': '99', 'quantity': 1}]}, 'no encontrado'),
    ({'products': [{'productId': '3', 'quantity': 10 ** 26}]}, 'cantidad máxima'),
    ({'products': [{'productId': '3', 'quantity': float('inf')}]}, 'cantidad máxima'),
    ({'products': None, 'product_id': '3', 'quantity': 10001}, 'cantidad máxima'),
])
def test_create_order_validation(services, order_payload, overrides, fragment):
    result = services.order_service.create_order(order_payload(**overrides))
    assert result['ok'] is False
    assert fragment in result['error']
    assert services.order_repo.get_all() == []


def test_unavailable_product_is_rejected(services, order_payload):
    services.product_service.update_product('3', {'status': 'out-of-stock'})
    result = services.order_service.create_order(order_payload())
    assert result['ok'] is False
    assert 'no disponible' in result['error']


def test_mobile_is_normalized(services, order_payload):
    result = services.order_service.create_order(order_payload(mobile='077 123-4567'))
    assert result['order']['mobile'] == '0771234567'


def test_order_codes_are_sequential(services, order_payload):
    first = services.order_service.create_order(order_payload())
    second = services.order_service.create_order(order_payload())
    assert first['order_id'][:11] == second['order_id'][:11]
    assert first['order_id'].endswith('001')
    assert second['order_id'].endswith('002')
    assert (first['order']['id'], second['order']['id']) == ('1', '2')


def test_order_creation_is_audited(services, order_payload):
    result = services.order_service.create_order(order_payload())
    history = services.audit_service.get_order_history(result['order_id'])
    assert history[0]['type'] == 'PEDIDO'
    assert history[0]['user'] == 'cliente'


# ==============================================================================
# CONSULTAS
# ==============================================================================

def test_order_details_include_items_and_actions(services, order_payload):
    created = services.order_service.create_order(order_payload(products=[
        {'productId': '1', 'quantity': 2},
        {'productId': '2', 'quantity': 1},
    ]))
    details = services.order_service.get_order_details(created['order_id'], role='admin')
    assert details['isMulti'] is True
    assert details['displayQuantity'] == 3
    assert details['subtotal'] == 25500.0
    assert [a['action'] for a in details['actions']] == ['send']
    assert services.order_service.get_order_details('missing') is None


def test_list_orders_paginates(services, order_payload):
    for _ in range(3):
        services.order_service.create_order(order_payload())
    first = services.order_service.list_orders(page=1, limit=2)
    assert first['total'] == 3
    assert first['pages'] == 2
    assert len(first['orders']) == 2
    assert first['orders'][0]['displayQuantity'] == 2
    second = services.order_service.list_orders(page=2, limit=2)
    assert len(second['orders']) == 1


def test_list_orders_empty(services):
    result = services.order_service.list_orders()
    assert result == {'orders': [], 'total': 0, 'page': 1, 'limit': 10, 'pages': 0}


def test_list_orders_clamps_bad_paging(services, order_payload):
    services.order_service.create_order(order_payload())
    result = services.order_service.list_orders(page='x', limit=1000)
    assert result['page'] == 1
    assert result['limit'] == 100


def test_list_orders_search_and_status(services, order_payload):
    services.order_service.create_order(order_payload(fullName='Kamal Silva'))
    other = services.order_service.create_order(order_payload(fullName='Sunil Fernando'))
    services.order_service.change_status(other['order_id'], 'sended', 'admin', 'admin')

    by_name = services.order_service.list_orders(search='kamal')
    assert [o['fullName'] for o in by_name['orders']] == ['Kamal Silva']

    by_status = services.order_service.list_orders(status='sended')
    assert [o['fullName'] for o in by_status['orders']] == ['Sunil Fernando']

    assert services.order_service.list_orders(status='all')['total'] == 2


def test_courier_list_only_shows_dispatched_orders(services, order_payload):
    services.order_service.create_order(order_payload())
    sent = services.order_service.create_order(order_payload())
    services.order_service.change_status(sent['order_id'], 'sended', 'admin', 'admin')
    result = services.order_service.list_courier_orders()
    assert result['total'] == 1
    assert result['orders'][0]['order_id'] == sent['order_id']


# ==============================================================================
# CAMBIOS DE ESTADO
# ==============================================================================

def test_change_status_full_flow(services, order_payload):
    created = services.order_service.create_order(order_payload())
    key = created['order_id']
    svc = services.order_service

    sent = svc.change_status(key, 'sended', 'admin@x', 'admin')
    assert sent['ok'] and sent['changed'] and sent['action'] == 'send'
    assert sent['order']['updatedAt']

    assert svc.change_status(key, 'in-transit', 'courier@x', 'courier')['action'] == 'in_transit'
    assert svc.change_status(key, 'delivered', 'courier@x', 'courier')['action'] == 'deliver'
    assert svc.get_order(key).status == 'delivered'

    logs = services.audit_service.get_logs(log_type='ESTADO')
    assert len(logs) == 3


def test_change_status_noop_does_not_write(services, order_payload):
    created = services.order_service.create_order(order_payload())
    result = services.order_service.change_status(created['order_id'], 'received', 'admin', 'admin')
    assert result['ok'] is True
    assert result['changed'] is False
    assert 'updatedAt' not in services.order_repo.get_order(created['order_id'])
    assert services.audit_service.get_logs(log_type='ESTADO') == []


def test_change_status_forbidden_for_courier(services, order_payload):
    created = services.order_service.create_order(order_payload())
    result = services.order_service.change_status(created['order_id'], 'sended', 'courier', 'courier')
    assert result['ok'] is False
    assert result.get('forbidden') is True
    assert services.order_service.get_order(created['order_id']).status == 'received'


def test_change_status_invalid_transition(services, order_payload):
    created = services.order_service.create_order(order_payload())
    result = services.order_service.change_status(created['order_id'], 'delivered', 'admin', 'admin')
    assert result['ok'] is False
    assert 'forbidden' not in result
    conform = services.order_service.change_status(created['order_id'], 'conform', 'admin', 'admin')
    assert conform['ok'] is False


def test_change_status_missing_order(services):
    result = services.order_service.change_status('404', 'sended', 'admin', 'admin')
    assert result == {'ok': False, 'error': 'Pedido no encontrado', 'not_found': True}


def test_change_status_accepts_uppercase(services, order_payload):
    created = services.order_service.create_order(order_payload())
    result = services.order_service.change_status(created['order_id'], 'SENDED', 'admin', 'admin')
    assert result['order']['status'] == 'sended'


def test_delete_order(services, order_payload):
    created = services.order_service.create_order(order_payload())
    assert services.order_service.delete_order(created['order']['id'], 'admin') == {'ok': True}
    assert services.order_service.get_order(created['order_id']) is None
    assert services.order_service.delete_order('1')['not_found'] is True


# ==============================================================================
# ESTADÍSTICAS
# ==============================================================================

def test_dashboard_stats(services):
    services.order_repo.save([
        _stored('1', 'received', '2024-05-10T10:30:00'),
        _stored('2', 'sended', '2024-05-10T20:00:00'),
        _stored('3', 'delivered', '2024-05-02T09:00:00'),
        _stored('4', 'conform', '2024-04-30T12:00:00'),
        _stored('5', 'issued', 'not a date'),
    ])
    stats = services.order_service.dashboard_stats(now=datetime(2024, 5, 10, 18, 0))
    assert stats == {
        'total': 5,
        'received': 1,
        'issued': 2,
        'courier': 2,
        'conform': 1,
        'today': 2,
        'monthly': 3,
        'today_in_range': 1,
    }


def test_dashboard_time_range_across_midnight(services):
    result = services.settings_service.save_time_range({
        'startTime': '10:00', 'startPeriod': 'PM',
        'endTime': '02:00', 'endPeriod': 'AM',
    })
    assert result['ok'], result
    services.order_repo.save([
        _stored('1', 'received', '2024-05-10T23:30:00'),
        _stored('2', 'received', '2024-05-10T01:00:00'),
        _stored('3', 'received', '2024-05-10T12:00:00'),
    ])
    stats = services.order_service.dashboard_stats(now=datetime(2024, 5, 10, 23, 59))
    assert stats['today'] == 3
    assert stats['today_in_range'] == 2


def test_courier_stats(services):
    services.order_repo.save([
        _stored('1', 'received', '2024-05-10T10:00:00'),
        _stored('2', 'sended', '2024-05-10T10:00:00'),
        _stored('3', 'in-transit', '2024-05-10T10:00:00'),
        _stored('4', 'delivered', '2024-05-10T10:00:00'),
        _stored('5', 'delivered', '2024-05-10T10:00:00'),
    ])
    stats = services.order_service.courier_stats()
    assert stats == {'delivered': 2, 'in-transit': 1, 'returned': 0, 'sended': 1, 'total': 4}


def test_analytics(services):
    services.order_repo.save([
        _stored('1', 'delivered', '2024-05-09T10:00:00', total=5350),
        _stored('2', 'delivered', '2024-05-10T11:00:00', total=10000),
        _stored('3', 'received', '2024-05-10T12:00:00', total=2500),
    ])
    data = services.order_service.analytics(days=3, now=datetime(2024, 5, 10, 18, 0))
    assert data['total_orders'] == 3
    assert data['delivered_orders'] == 2
    assert data['revenue'] == 15350.0
    assert data['average_order_value'] == 7675.0
    assert data['status_distribution'] == {'delivered': 2, 'received': 1}
    assert data['daily'] == [
        {'date': '2024-05-08', 'orders': 0, 'revenue': 0.0},
        {'date': '2024-05-09', 'orders': 1, 'revenue': 5350.0},
        {'date': '2024-05-10', 'orders': 2, 'revenue': 10000.0},
    ]


def test_export_csv(services, order_payload):
    services.order_service.create_order(order_payload(products=[
        {'productId': '1', 'quantity': 2},
        {'productId': '3', 'quantity': 1},
    ]))
    text = services.export_service.orders_csv(services.order_service.filter_orders())
    lines = text.strip().splitlines()
    assert lines[0].startswith('Pedido,Fecha,Cliente')
    assert 'NIRVAAN 5KG x2; NIRVAAN 1KG x1' in lines[1]
    assert '22850.00' in lines[1]


def test_legacy_issued_orders_reach_the_courier(services):
    services.order_repo.save([
        _stored('1', 'issued', '2024-05-10T10:00:00'),
        _stored('2', 'sended', '2024-05-10T11:00:00'),
        _stored('3', 'received', '2024-05-10T12:00:00'),
    ])
    listed = services.order_service.list_courier_orders()
    assert sorted(o['id'] for o in listed['orders']) == ['1', '2']
    assert services.order_service.list_courier_orders(status='sended')['total'] == 2

    stats = services.order_service.courier_stats()
    assert stats['sended'] == 2
    assert stats['total'] == 2

    result = services.order_service.change_status('1', 'in-transit', 'courier@orderdesk.local', 'courier')
    assert result['ok'], result
