def _events(sio_client, name):
    return [pkt for pkt in sio_client.get_received() if pkt['name'] == name]


def test_watch_match_requires_fields(sio_client):
    sio_client.emit('watch_match', {'matchId': 'm1'})
    errors = _events(sio_client, 'error')
    assert errors and 'playerId' in errors[0]['args'][0]['error']


def test_watch_match_rejects_strangers(client, sio_client):
    match_id = client.post('/api/match/single', json={
        'playerId': 'alice', 'secretWord': 'CRANE', 'wordLength': 5, 'difficulty': 'easy',
    }).get_json()['data']['match_id']

    sio_client.emit('watch_match', {'matchId': match_id, 'playerId': 'mallory'})
    assert _events(sio_client, 'error')


def test_watchers_are_told_about_changes(client, sio_client):
    client.post('/api/match/multi', json={'playerId': 'alice', 'secretWord': 'CRANE', 'wordLength': 5})
    match_id = client.post('/api/match/multi', json={
        'playerId': 'bob', 'secretWord': 'HOUSE', 'wordLength': 5,
    }).get_json()['data']['match_id']

    sio_client.emit('watch_match', {'matchId': match_id, 'playerId': 'bob'})
    initial = _events(sio_client, 'match_updated')
    assert initial[0]['args'][0]['turn_holder'] == 'alice'

    client.post(f'/api/match/{match_id}/guess', json={'playerId': 'alice', 'guess': 'SLATE'})
    updates = _events(sio_client, 'match_updated')
    assert updates
    payload = updates[-1]['args'][0]
    assert payload['match_id'] == match_id
    assert payload['turn_holder'] == 'bob'
    # Notifications never carry secrets
    assert 'player_a' not in payload and 'player_b' not in payload


def test_unwatch_match(sio_client):
    sio_client.emit('unwatch_match', {'matchId': 'm1'})
    assert _events(sio_client, 'unwatched')[0]['args'][0] == {'match_id': 'm1'}
