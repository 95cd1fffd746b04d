"""
HTTP API Tests
"""

import pytest

from vrf_raffle.api import create_app


@pytest.fixture
def client(raffle):
    app = create_app(raffle)
    app.config['TESTING'] = True
    return app.test_client()


def enter(client, player, payment):
    return client.post('/api/raffle/enter', json={'player': player, 'payment': payment})


def test_health(client, raffle):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json()['raffle'] == raffle.address


def test_state(client, raffle, entrance_fee):
    data = client.get('/api/raffle').get_json()['data']
    assert data['raffle_state'] == 'OPEN'
    assert data['entrance_fee'] == entrance_fee
    assert data['interval'] == raffle.get_interval()
    assert data['players'] == []
    assert data['upkeep_needed'] is False
    assert data['seconds_until_upkeep'] == raffle.get_interval()


def test_state_counts_down_to_upkeep(client, raffle, accounts, entrance_fee, clock, pass_interval):
    enter(client, accounts[0], entrance_fee)
    clock.advance(10)
    data = client.get('/api/raffle').get_json()['data']
    assert data['seconds_until_upkeep'] == raffle.get_interval() - 10
    assert data['upkeep_needed'] is False

    pass_interval(raffle)
    data = client.get('/api/raffle').get_json()['data']
    assert data['seconds_until_upkeep'] == 0
    assert data['upkeep_needed'] is True


def test_enter(client, raffle, accounts, entrance_fee):
    response = enter(client, accounts[0], entrance_fee)
    assert response.status_code == 200
    body = response.get_json()
    assert body['success']
    assert body['data'] == {'num_players': 1, 'balance': entrance_fee}
    assert raffle.get_player(0) == accounts[0]


def test_enter_accepts_string_amounts(client, raffle, accounts, entrance_fee):
    response = enter(client, accounts[0], str(entrance_fee))
    assert response.status_code == 200
    assert raffle.get_balance() == entrance_fee


def test_enter_with_too_little(client, raffle, accounts, entrance_fee):
    response = enter(client, accounts[0], entrance_fee - 1)
    assert response.status_code == 400
    body = response.get_json()
    assert body['error'] == 'Raffle__NotEnoughEthEntered'
    assert body['details'] == {'payment': entrance_fee - 1, 'entrance_fee': entrance_fee}
    assert raffle.get_num_players() == 0


@pytest.mark.parametrize("payload", [{}, {'player': '0xabc'}, {'payment': 1}])
def test_enter_missing_fields(client, payload):
    response = client.post('/api/raffle/enter', json=payload)
    assert response.status_code == 400
    assert 'Missing fields' in response.get_json()['error']


def test_enter_with_bad_payment(client, accounts):
    response = enter(client, accounts[0], 'lots')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'payment must be an integer'


def test_player_lookup(client, accounts, entrance_fee):
    enter(client, accounts[0], entrance_fee)
    assert client.get('/api/raffle/players/0').get_json()['data']['player'] == accounts[0]

    response = client.get('/api/raffle/players/1')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Raffle__PlayerIndexOutOfRange'


def test_perform_upkeep_not_needed(client):
    response = client.post('/api/raffle/upkeep')
    assert response.status_code == 400
    body = response.get_json()
    assert body['error'] == 'Raffle__UpkeepNotNeeded'
    assert body['details'] == {'balance': 0, 'num_players': 0, 'raffle_state': 0}


def test_full_cycle_over_http(client, raffle, accounts, entrance_fee, pass_interval):
    for player in accounts[:3]:
        enter(client, player, entrance_fee)
    pass_interval(raffle)

    assert client.get('/api/raffle/upkeep').get_json()['data']['upkeep_needed'] is True

    request_id = client.post('/api/raffle/upkeep').get_json()['data']['request_id']
    assert client.get('/api/raffle').get_json()['data']['raffle_state'] == 'CALCULATING'

    response = enter(client, accounts[3], entrance_fee)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Raffle__NotOpen'

    response = client.post('/api/raffle/fulfill', json={'request_id': request_id, 'random_words': [4]})
    assert response.status_code == 200
    assert response.get_json()['data']['winner'] == accounts[1]

    winners = client.get('/api/raffle/winners?limit=1').get_json()['data']
    assert winners[0]['winner'] == accounts[1]
    assert winners[0]['amount'] == 3 * entrance_fee


def test_fulfill_unrecognized_request(client):
    response = client.post('/api/raffle/fulfill', json={'request_id': 9, 'random_words': [1]})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Raffle__UnrecognizedRequest'


def test_fulfill_requires_word_list(client):
    response = client.post('/api/raffle/fulfill', json={'request_id': 1, 'random_words': 5})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'random_words must be a list'


def test_unexpected_errors_become_500(client, raffle, monkeypatch):
    def broken():
        raise RuntimeError("database went away")

    monkeypatch.setattr(raffle, "check_upkeep_needed", broken)
    response = client.get('/api/raffle/upkeep')
    assert response.status_code == 500
    assert response.get_json()['error'] == 'Internal server error'
