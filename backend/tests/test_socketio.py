QUESTION = {
    'id': 'q1',
    'text': 'Capital of France?',
    'options': ['Paris', 'Rome', 'Madrid', 'Berlin'],
    'correctIndex': 0,
    'durationSec': 15,
}


def received(sio_client, name):
    return [pkt['args'][0] if pkt['args'] else None
            for pkt in sio_client.get_received() if pkt['name'] == name]


def create_room(sio_factory, title='Capitals'):
    host = sio_factory()
    host.get_received()
    host.emit('host:create_room', {'title': title})
    pin = received(host, 'host:room_created')[0]['pin']
    return host, pin


def join(sio_factory, pin, name):
    player = sio_factory()
    player.get_received()
    player.emit('player:join', {'pin': pin, 'name': name})
    return player


def test_host_creates_room(flask_app, sio_factory):
    host, pin = create_room(sio_factory)
    assert len(pin) == 6
    room = flask_app.extensions['quiz_registry'].get_room(pin)
    assert room is not None
    assert room.title == 'Capitals'


def test_join_unknown_pin_reports_error(sio_factory):
    player = sio_factory()
    player.get_received()
    player.emit('player:join', {'pin': '000000', 'name': 'Ann'})
    assert received(player, 'error:join') == [{'message': 'Room not found'}]


def test_join_broadcasts_roster(sio_factory):
    host, pin = create_room(sio_factory)
    player = join(sio_factory, pin, 'Ann')
    events = player.get_received()
    names = [pkt['name'] for pkt in events]
    assert 'room:players' in names
    assert 'player:joined' in names
    rosters = received(host, 'room:players')
    assert rosters == [{'players': [{'name': 'Ann', 'score': 0, 'answered': False}]}]


def test_full_round(sio_factory):
    host, pin = create_room(sio_factory)
    ann = join(sio_factory, pin, 'Ann')
    bob = join(sio_factory, pin, 'Bob')
    for c in (host, ann, bob):
        c.get_received()

    host.emit('host:start_question', {'pin': pin, 'question': QUESTION})
    started = ann.get_received()
    assert [pkt['name'] for pkt in started] == ['interstitial:hide', 'question:start']
    payload = started[1]['args'][0]
    assert payload['question']['text'] == 'Capital of France?'
    assert 'correctIndex' not in payload['question']
    assert payload['endsAt'] > 0

    host.get_received()
    ann.emit('player:answer', {'pin': pin, 'answer': 0})
    assert received(host, 'host:progress') == [{'answered': 1, 'total': 2}]
    ann.emit('player:answer', {'pin': pin, 'answer': 1})
    assert received(host, 'host:progress') == []
    bob.emit('player:answer', {'pin': pin, 'answer': 2})
    assert received(host, 'host:progress') == [{'answered': 2, 'total': 2}]

    host.emit('host:finish_question', {'pin': pin})
    results = received(bob, 'question:results')[0]
    assert results['correctIndex'] == 0
    by_name = {r['name']: r for r in results['results']}
    assert by_name['Ann']['correct'] is True
    assert 500 < by_name['Ann']['add'] <= 650
    assert by_name['Bob']['add'] == 0
    assert results['leaderboard'][0]['name'] == 'Ann'


def test_non_host_commands_are_ignored(flask_app, sio_factory):
    host, pin = create_room(sio_factory)
    ann = join(sio_factory, pin, 'Ann')
    host.get_received()
    ann.get_received()

    ann.emit('host:start_question', {'pin': pin, 'question': QUESTION})
    ann.emit('host:end_game', {'pin': pin})
    assert host.get_received() == []
    assert ann.get_received() == []
    assert pin in flask_app.extensions['quiz_registry']


def test_pause_and_resume_broadcast(sio_factory):
    host, pin = create_room(sio_factory)
    ann = join(sio_factory, pin, 'Ann')
    host.emit('host:start_question', {'pin': pin, 'question': QUESTION})
    ann.get_received()

    host.emit('host:pause_question', {'pin': pin})
    assert [pkt['name'] for pkt in ann.get_received()] == ['question:paused']
    ann.emit('player:answer', {'pin': pin, 'answer': 0})
    host.get_received()

    host.emit('host:resume_question', {'pin': pin})
    resumed = received(ann, 'question:resumed')
    assert len(resumed) == 1
    assert resumed[0]['endsAt'] > 0
    assert received(host, 'host:progress') == []


def test_side_channel_events(sio_factory):
    host, pin = create_room(sio_factory)
    ann = join(sio_factory, pin, 'Ann')
    ann.get_received()

    host.emit('host:set_meta', {'pin': pin, 'meta': {'coverDescription': 'Europe'}})
    host.emit('host:interstitial', {'pin': pin, 'message': 'Break'})
    host.emit('host:skip_video', {'pin': pin})
    host.emit('host:show_scores', {'pin': pin})
    events = ann.get_received()
    assert [pkt['name'] for pkt in events] == ['room:meta', 'interstitial:show', 'video:skip', 'scores:show']
    assert events[0]['args'][0]['coverDescription'] == 'Europe'
    assert events[1]['args'][0]['message'] == 'Break'
    assert events[3]['args'][0] == {'leaderboard': [{'name': 'Ann', 'score': 0}]}


def test_end_game_makes_pin_unresolvable(flask_app, sio_factory):
    host, pin = create_room(sio_factory)
    ann = join(sio_factory, pin, 'Ann')
    ann.get_received()

    host.emit('host:end_game', {'pin': pin})
    names = [pkt['name'] for pkt in ann.get_received()]
    assert names == ['game:final', 'room:ended']
    assert pin not in flask_app.extensions['quiz_registry']

    host.emit('host:start_question', {'pin': pin, 'question': QUESTION})
    assert ann.get_received() == []
    late = join(sio_factory, pin, 'Bob')
    assert received(late, 'error:join') == [{'message': 'Room not found'}]


def test_host_disconnect_ends_room_once(flask_app, sio_factory):
    host, pin = create_room(sio_factory)
    ann = join(sio_factory, pin, 'Ann')
    host.emit('host:start_question', {'pin': pin, 'question': QUESTION})
    ann.get_received()

    host.disconnect()
    assert [pkt['name'] for pkt in ann.get_received()] == ['room:ended']
    assert pin not in flask_app.extensions['quiz_registry']


def test_player_disconnect_keeps_round_active(flask_app, sio_factory):
    host, pin = create_room(sio_factory)
    ann = join(sio_factory, pin, 'Ann')
    bob = join(sio_factory, pin, 'Bob')
    host.emit('host:start_question', {'pin': pin, 'question': QUESTION})
    host.get_received()

    ann.disconnect()
    rosters = received(host, 'room:players')
    assert rosters == [{'players': [{'name': 'Bob', 'score': 0, 'answered': False}]}]
    room = flask_app.extensions['quiz_registry'].get_room(pin)
    assert room.current_question is not None

    bob.emit('player:answer', {'pin': pin, 'answer': 0})
    assert received(host, 'host:progress') == [{'answered': 1, 'total': 1}]
