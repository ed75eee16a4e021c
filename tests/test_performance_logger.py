import os

from order_desk import performance_logger
from order_desk.performance_logger import get_function_stats, profile_function, reset_stats


def test_profile_function_counts_calls():
    reset_stats()

    @profile_function(name="Suma de prueba")
    def add(a, b):
        return a + b

    assert add(2, 3) == 5
    add(1, 1)
    stats = get_function_stats()['Suma de prueba']
    assert stats['calls'] == 2
    assert stats['max_time'] >= 0


def test_requests_are_logged_to_data_dir(client, tmp_path):
    client.get('/api/health')
    log_file = os.path.join(str(tmp_path), 'logs', performance_logger.PERFORMANCE_LOG)
    with open(log_file, encoding='utf-8') as f:
        content = f.read()
    assert 'Estado del servicio' in content


def test_route_stats_group_by_rule(client, admin_headers):
    performance_logger.reset_stats()
    client.get('/api/orders/1', headers=admin_headers)
    client.get('/api/orders/2', headers=admin_headers)
    stats = performance_logger.get_route_stats()
    entry = stats['GET /api/orders/<order_id>']
    assert entry['calls'] == 2
    assert entry['errors'] == 0


def test_log_lines_are_pipe_separated(client, tmp_path):
    client.post('/api/orders', json={})
    log_file = os.path.join(str(tmp_path), 'logs', performance_logger.PERFORMANCE_LOG)
    with open(log_file, encoding='utf-8') as f:
        last = f.read().strip().splitlines()[-1]
    fields = last.split(' | ')
    assert fields[1] == '400'
    assert fields[2] == 'POST /api/orders'
    assert fields[3] == 'Crear pedido'
    assert fields[4] == 'cliente'
