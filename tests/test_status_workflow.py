import pytest

from order_desk.services.status_workflow import (
    NOOP,
    available_actions,
    status_for_action,
    validate_transition,
)


@pytest.mark.parametrize('current, new, role, action', [
    ('received', 'sended', 'admin', 'send'),
    ('sended', 'received', 'admin', 'unsend'),
    ('sended', 'in-transit', 'courier', 'in_transit'),
    ('sended', 'in-transit', 'admin', 'in_transit'),
    ('in-transit', 'delivered', 'courier', 'deliver'),
    ('in-transit', 'returned', 'courier', 'return'),
    ('sended', 'returned', 'courier', 'return'),
    ('returned', 'delivered', 'admin', 'restore'),
])
def test_allowed_transitions(current, new, role, action):
    result = validate_transition(current, new, role)
    assert result == {'allowed': True, 'error': None, 'action': action}


@pytest.mark.parametrize('current, new', [
    ('received', 'sended'),
    ('sended', 'received'),
    ('returned', 'delivered'),
])
def test_courier_cannot_run_admin_actions(current, new):
    result = validate_transition(current, new, 'courier')
    assert result['allowed'] is False
    assert result['action'] is not None
    assert result['error']


@pytest.mark.parametrize('current, new', [
    ('received', 'delivered'),
    ('received', 'in-transit'),
    ('delivered', 'received'),
    ('delivered', 'returned'),
    ('in-transit', 'sended'),
])
def test_transitions_outside_table_are_rejected(current, new):
    result = validate_transition(current, new, 'admin')
    assert result['allowed'] is False
    assert result['action'] is None


def test_reapplying_same_status_is_noop():
    for status in ('received', 'sended', 'in-transit', 'delivered', 'returned'):
        result = validate_transition(status, status, 'admin')
        assert result['allowed'] is True
        assert result['action'] == NOOP


def test_conform_is_never_a_target():
    for current in ('received', 'sended', 'delivered', 'conform'):
        result = validate_transition(current, 'conform', 'admin')
        assert result['allowed'] is False


def test_unknown_status_is_rejected():
    result = validate_transition('received', 'shipped', 'admin')
    assert result['allowed'] is False
    assert 'shipped' in result['error']


def test_status_is_case_insensitive():
    assert validate_transition('received', 'SENDED', 'admin')['action'] == 'send'


def test_legacy_statuses_follow_their_aliases():
    assert validate_transition('issued', 'in-transit', 'courier')['action'] == 'in_transit'
    assert validate_transition('pending', 'sended', 'admin')['action'] == 'send'


def test_unknown_role_is_forbidden():
    result = validate_transition('sended', 'in-transit', 'guest')
    assert result['allowed'] is False


def test_available_actions_by_role():
    admin = available_actions('sended', 'admin')
    assert [a['action'] for a in admin] == ['unsend', 'in_transit', 'return']
    courier = available_actions('sended', 'courier')
    assert [a['status'] for a in courier] == ['in-transit', 'returned']
    assert available_actions('delivered', 'courier') == []
    assert available_actions('returned', 'admin')[0]['label']


def test_status_for_action():
    assert status_for_action('in-transit', 'return') == 'returned'
    assert status_for_action('sended', 'return') == 'returned'
    assert status_for_action('received', 'deliver') is None
