"""
Web API Tests

Drives the Flask application the way the dashboard does.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from interfaces.web_api import create_app
from models.registry import SimulationRegistry
from models.errors import InternalError
from utils.config import SimulatorConfig


@pytest.fixture
def registry():
    return SimulationRegistry()


@pytest.fixture
def client(registry):
    app = create_app(registry=registry, config=SimulatorConfig())
    app.config['TESTING'] = True
    return app.test_client()


def _create(client, strategy="periodic"):
    res = client.post('/api/simulation/create', json={'detection_strategy': strategy})
    assert res.status_code == 201
    return res.get_json()['simulation_id']


def _setup(client, sim_id, processes=(), resources=()):
    for pid in processes:
        res = client.post(f'/api/simulation/{sim_id}/process', json={'pid': pid, 'priority': 1})
        assert res.get_json()['status'] == 'success'
    for rid, instances in resources:
        res = client.post(f'/api/simulation/{sim_id}/resource',
                          json={'rid': rid, 'instances': instances})
        assert res.get_json()['status'] == 'success'


def _request(client, sim_id, pid, rid):
    return client.post(f'/api/simulation/{sim_id}/request', json={'process': pid, 'resource': rid})


def test_scenario_a_allocated_and_safe(client):
    sim_id = _create(client)
    _setup(client, sim_id, ['P1'], [('R1', 1)])

    res = _request(client, sim_id, 'P1', 'R1')

    assert res.status_code == 200
    assert res.get_json() == {
        'status': 'success',
        'allocation_result': 'allocated',
        'system_state': 'SAFE',
    }


def test_scenario_b_run_then_fetch_state(client):
    sim_id = _create(client)
    _setup(client, sim_id, ['P1', 'P2'], [('R1', 1), ('R2', 1)])
    assert _request(client, sim_id, 'P1', 'R1').get_json()['allocation_result'] == 'allocated'
    assert _request(client, sim_id, 'P2', 'R2').get_json()['allocation_result'] == 'allocated'
    assert _request(client, sim_id, 'P1', 'R2').get_json()['allocation_result'] == 'blocked'
    assert _request(client, sim_id, 'P2', 'R1').get_json()['allocation_result'] == 'blocked'

    run = client.post(f'/api/simulation/{sim_id}/run', json={'steps': 1})
    assert run.status_code == 200
    assert run.get_json()['deadlocked'] == ['P1', 'P2']

    state = client.get(f'/api/simulation/{sim_id}/state').get_json()
    assert state['state'] == 'UNSAFE'
    assert state['system_state'] == 'UNSAFE'
    assert state['iteration'] == 1
    assert state['deadlocked'] == ['P1', 'P2']
    assert sorted(state['wait_edges']) == [['P1', 'R2'], ['P2', 'R1']]
    assert [p['state'] for p in state['processes']] == ['BLOCKED', 'BLOCKED']


def test_scenario_c_no_transition_error(client):
    sim_id = _create(client)
    _setup(client, sim_id, ['P1', 'P2'], [('R1', 1), ('R2', 1)])
    _request(client, sim_id, 'P2', 'R1')
    assert _request(client, sim_id, 'P1', 'R1').get_json()['allocation_result'] == 'blocked'

    res = _request(client, sim_id, 'P1', 'R2')

    assert res.status_code == 409
    assert "No transition" in res.get_json()['error']


def test_scenario_d_safe(client):
    sim_id = _create(client)
    _setup(client, sim_id, ['P1', 'P2', 'P3'], [('R1', 2)])
    assert _request(client, sim_id, 'P1', 'R1').get_json()['allocation_result'] == 'allocated'
    assert _request(client, sim_id, 'P2', 'R1').get_json()['allocation_result'] == 'allocated'
    assert _request(client, sim_id, 'P3', 'R1').get_json()['allocation_result'] == 'blocked'

    client.post(f'/api/simulation/{sim_id}/run', json={'steps': 1})

    assert client.get(f'/api/simulation/{sim_id}/state').get_json()['state'] == 'SAFE'


def test_immediate_strategy_reports_unsafe_on_request(client):
    sim_id = _create(client, 'immediate')
    _setup(client, sim_id, ['P1', 'P2'], [('R1', 1), ('R2', 1)])
    _request(client, sim_id, 'P1', 'R1')
    _request(client, sim_id, 'P2', 'R2')
    _request(client, sim_id, 'P1', 'R2')

    res = _request(client, sim_id, 'P2', 'R1')

    assert res.get_json()['system_state'] == 'UNSAFE'


def test_app_uses_the_registry_it_is_given():
    registry = SimulationRegistry()
    config = SimulatorConfig(default_strategy='immediate')
    app = create_app(registry=registry, config=config)

    assert app.extensions['simulation_registry'] is registry
    assert app.config['SIMULATOR'] is config
    sim_id = app.test_client().post('/api/simulation/create', json={}).get_json()['simulation_id']
    assert sim_id in registry
    assert registry.get(sim_id).detection_strategy == 'immediate'


def test_create_defaults_to_configured_strategy(client, registry):
    res = client.post('/api/simulation/create', json={})
    sim_id = res.get_json()['simulation_id']
    assert registry.get(sim_id).detection_strategy == 'periodic'


def test_create_rejects_unknown_strategy(client):
    res = client.post('/api/simulation/create', json={'detection_strategy': 'never'})
    assert res.status_code == 400
    assert 'error' in res.get_json()


def test_duplicate_process_and_resource_conflict(client):
    sim_id = _create(client)
    _setup(client, sim_id, ['P1'], [('R1', 1)])

    res = client.post(f'/api/simulation/{sim_id}/process', json={'pid': 'P1', 'priority': 2})
    assert res.status_code == 409
    res = client.post(f'/api/simulation/{sim_id}/resource', json={'rid': 'R1', 'instances': 2})
    assert res.status_code == 409


@pytest.mark.parametrize("body", [{'rid': 'R1', 'instances': 0},
                                  {'rid': 'R1'},
                                  {'instances': 2},
                                  {'rid': 'R1', 'instances': None}])
def test_invalid_resource_is_validation_error(client, body):
    sim_id = _create(client)
    res = client.post(f'/api/simulation/{sim_id}/resource', json=body)
    assert res.status_code == 400
    assert 'error' in res.get_json()


def test_invalid_process_is_validation_error(client):
    sim_id = _create(client)
    res = client.post(f'/api/simulation/{sim_id}/process', json={'pid': 'P1', 'priority': None})
    assert res.status_code == 400
    res = client.post(f'/api/simulation/{sim_id}/process', json={'priority': 1})
    assert res.status_code == 400


def test_unknown_simulation_is_not_found(client):
    for path in ('process', 'resource', 'request', 'run'):
        res = client.post(f'/api/simulation/nope/{path}', json={})
        assert res.status_code == 404
        assert 'nope' in res.get_json()['error']
    assert client.get('/api/simulation/nope/state').status_code == 404


def test_unknown_process_or_resource_is_not_found(client):
    sim_id = _create(client)
    _setup(client, sim_id, ['P1'], [('R1', 1)])
    assert _request(client, sim_id, 'P9', 'R1').status_code == 404
    assert _request(client, sim_id, 'P1', 'R9').status_code == 404


@pytest.mark.parametrize("body", [{'process': 5, 'resource': 'R1'},
                                  {'process': 'P1', 'resource': [1]},
                                  {'process': ' ', 'resource': 'R1'},
                                  {'process': {'pid': 'P1'}, 'resource': 'R1'}])
def test_malformed_request_ids_are_validation_errors(client, body):
    sim_id = _create(client)
    _setup(client, sim_id, ['P1'], [('R1', 1)])

    res = client.post(f'/api/simulation/{sim_id}/request', json=body)

    assert res.status_code == 400
    assert 'identifier' in res.get_json()['error']


def test_request_ids_are_stripped_like_on_add(client):
    sim_id = _create(client)
    _setup(client, sim_id, ['P1 '], [(' R1', 1)])

    res = _request(client, sim_id, 'P1 ', ' R1')

    assert res.status_code == 200
    assert res.get_json()['allocation_result'] == 'allocated'
    processes = client.get(f'/api/simulation/{sim_id}/state').get_json()['processes']
    assert [p['pid'] for p in processes] == ['P1']


def test_run_rejects_bad_steps(client):
    sim_id = _create(client)
    res = client.post(f'/api/simulation/{sim_id}/run', json={'steps': 0})
    assert res.status_code == 400
    assert client.get(f'/api/simulation/{sim_id}/state').get_json()['iteration'] == 0


def test_run_defaults_to_one_step(client):
    sim_id = _create(client)
    client.post(f'/api/simulation/{sim_id}/run', json={})
    assert client.get(f'/api/simulation/{sim_id}/state').get_json()['iteration'] == 1


def test_malformed_body_is_validation_error(client):
    sim_id = _create(client)
    res = client.post(f'/api/simulation/{sim_id}/process', data='not json',
                      content_type='application/json')
    assert res.status_code == 400
    res = client.post(f'/api/simulation/{sim_id}/process', json=['P1'])
    assert res.status_code == 400


def test_unknown_route_returns_json_error(client):
    res = client.get('/api/does-not-exist')
    assert res.status_code == 404
    assert 'error' in res.get_json()


def test_internal_error_is_generic(client, registry, monkeypatch):
    sim_id = _create(client)

    def broken_snapshot(*args, **kwargs):
        raise InternalError("Resource conservation violated for R1")

    monkeypatch.setattr(registry.get(sim_id), 'snapshot', broken_snapshot)
    res = client.get(f'/api/simulation/{sim_id}/state')

    assert res.status_code == 500
    assert res.get_json() == {'error': 'Internal simulation error'}


def test_health(client):
    _create(client)
    assert client.get('/api/health').get_json() == {'status': 'ok', 'simulations': 1}
