import threading

import pytest

from order_desk.client import ApiNetworkError, OrderCache, OrderPoller, StatusSync


def _orders(*statuses):
    return [
        {'id': str(i), 'order_id': f'ORD20240510{i:03d}', 'status': status}
        for i, status in enumerate(statuses, start=1)
    ]


class FakeClient:
    """Servidor en memoria con la misma interfaz que ApiClient."""

    def __init__(self, orders, fail_update=False, fail_list=False):
        self.orders = {o['id']: dict(o) for o in orders}
        self.fail_update = fail_update
        self.fail_list = fail_list
        self.calls = []

    def _update(self, order_id, status):
        self.calls.append(('update', order_id, status))
        if self.fail_update:
            raise ApiNetworkError()
        self.orders[order_id]['status'] = status
        return {'success': True, 'data': dict(self.orders[order_id])}

    update_order_status = _update
    update_courier_status = _update

    def list_orders(self, **params):
        self.calls.append(('list', params))
        if self.fail_list:
            raise ApiNetworkError()
        return [dict(o) for o in self.orders.values()], {}

    list_courier_orders = list_orders


# ==============================================================================
# CACHÉ
# ==============================================================================

def test_begin_update_and_confirm():
    cache = OrderCache(_orders('received'))
    assert cache.begin_update('1', 'sended') is True
    assert cache.get('1')['status'] == 'sended'
    assert cache.is_pending('1')
    cache.confirm('1')
    assert not cache.is_pending('1')
    assert cache.get('1')['status'] == 'sended'


def test_begin_update_same_status_is_noop():
    cache = OrderCache(_orders('received'))
    assert cache.begin_update('1', 'received') is False
    assert not cache.is_pending('1')


def test_begin_update_unknown_order():
    with pytest.raises(KeyError):
        OrderCache().begin_update('9', 'sended')


def test_rollback_restores_previous_status():
    cache = OrderCache(_orders('sended'))
    cache.begin_update('1', 'in-transit')
    cache.rollback('1')
    assert cache.get('1')['status'] == 'sended'
    assert not cache.is_pending('1')


def test_lookup_by_order_code():
    cache = OrderCache(_orders('received', 'sended'))
    assert cache.get('ORD20240510002')['id'] == '2'
    assert len(cache) == 2


def test_get_returns_a_copy():
    cache = OrderCache(_orders('received'))
    cache.get('1')['status'] = 'delivered'
    assert cache.get('1')['status'] == 'received'


def test_reconcile_keeps_pending_optimistic_status():
    cache = OrderCache(_orders('sended', 'received'))
    cache.begin_update('1', 'in-transit')

    cache.reconcile(_orders('sended', 'sended'))
    assert cache.get('1')['status'] == 'in-transit'
    assert cache.get('2')['status'] == 'sended'
    assert [o['pending'] for o in cache.all()] == [True, False]

    cache.rollback('1')
    assert cache.get('1')['status'] == 'sended'


def test_reconcile_drops_orders_missing_from_server():
    cache = OrderCache(_orders('received', 'received'))
    cache.reconcile(_orders('received'))
    assert cache.get('2') is None


def test_push_event_updates_status():
    cache = OrderCache(_orders('sended'))
    assert cache.apply_push_event({'orderId': '1', 'status': 'in-transit'}) is True
    assert cache.get('1')['status'] == 'in-transit'
    assert cache.apply_push_event({'orderId': '99', 'status': 'delivered'}) is False
    assert cache.apply_push_event({'status': 'delivered'}) is False


def test_push_event_on_pending_record_changes_rollback_target():
    cache = OrderCache(_orders('sended'))
    cache.begin_update('1', 'in-transit')
    cache.apply_push_event({'orderId': '1', 'status': 'returned'})
    assert cache.get('1')['status'] == 'in-transit'
    cache.rollback('1')
    assert cache.get('1')['status'] == 'returned'


# ==============================================================================
# SINCRONIZACIÓN
# ==============================================================================

def test_change_status_success_refreshes():
    client = FakeClient(_orders('received'))
    cache = OrderCache(_orders('received'))
    sync = StatusSync(client, cache, list_params={'status': 'all'})

    assert sync.change_status('1', 'sended') is True
    assert client.calls == [('update', '1', 'sended'), ('list', {'status': 'all'})]
    assert cache.get('1')['status'] == 'sended'
    assert not cache.is_pending('1')


def test_change_status_without_change_makes_no_call():
    client = FakeClient(_orders('sended'))
    sync = StatusSync(client, OrderCache(_orders('sended')))
    assert sync.change_status('1', 'sended') is False
    assert client.calls == []


def test_change_status_failure_rolls_back():
    client = FakeClient(_orders('sended'), fail_update=True)
    cache = OrderCache(_orders('sended'))
    sync = StatusSync(client, cache, courier=True)

    with pytest.raises(ApiNetworkError):
        sync.change_status('1', 'in-transit')
    assert cache.get('1')['status'] == 'sended'
    assert not cache.is_pending('1')


def test_refresh_failure_after_change_keeps_confirmed_status():
    client = FakeClient(_orders('sended'), fail_list=True)
    cache = OrderCache(_orders('sended'))
    sync = StatusSync(client, cache, courier=True)
    assert sync.change_status('ORD20240510001', 'in-transit') is True
    assert cache.get('1')['status'] == 'in-transit'
    assert not cache.is_pending('1')


def test_change_status_unknown_order():
    sync = StatusSync(FakeClient([]), OrderCache())
    with pytest.raises(KeyError):
        sync.change_status('5', 'sended')


# ==============================================================================
# POLLING
# ==============================================================================

def test_poll_once_reconciles():
    client = FakeClient(_orders('received', 'delivered'))
    cache = OrderCache()
    poller = OrderPoller(StatusSync(client, cache))
    assert poller.poll_once() is True
    assert len(cache) == 2


def test_poll_once_reports_errors():
    errors = []
    client = FakeClient([], fail_list=True)
    poller = OrderPoller(StatusSync(client, OrderCache()), on_error=errors.append)
    assert poller.poll_once() is False
    assert isinstance(errors[0], ApiNetworkError)


def test_poller_thread_polls_until_stopped():
    polled = threading.Event()

    class SignallingClient(FakeClient):
        def list_orders(self, **params):
            polled.set()
            return super().list_orders(**params)

    client = SignallingClient(_orders('received'))
    cache = OrderCache()
    poller = OrderPoller(StatusSync(client, cache), interval=0.01)
    poller.start()
    try:
        assert polled.wait(2.0)
        assert poller.running
    finally:
        poller.stop(timeout=2.0)
    assert not poller.running
    assert cache.get('1') is not None
