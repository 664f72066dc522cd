from flask import current_app, request
from flask_socketio import close_room, emit, join_room
from typing import Any, Dict, Iterable, Optional

from quizlive import socketio
from quizlive.services.quiz import Emit, Room, RoomRegistry


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _registry() -> RoomRegistry:
    return current_app.extensions['quiz_registry']


def _payload(data: Any) -> Dict[str, Any]:
    return data if isinstance(data, dict) else {}


def broadcast(emits: Iterable[Emit]) -> None:
    """Deliver a room's outbound events to the whole room or to a single connection."""
    for event, payload, to in emits:
        if payload is None:
            socketio.emit(event, to=to, namespace=request.namespace)
        else:
            socketio.emit(event, payload, to=to, namespace=request.namespace)


def _close(room: Room) -> None:
    _registry().delete_room(room.pin)
    close_room(room.pin)


def _room_for(data: Dict[str, Any]) -> Optional[Room]:
    return _registry().get_room(data.get('pin'))


def handle_connect(auth=None):
    current_app.logger.debug(f"[connect] sid={_get_sid()}")


def handle_disconnect(reason=None):
    sid = _get_sid()
    for room in _registry().rooms_for_connection(sid):
        with room.lock:
            was_host = room.is_host(sid)
            emits = room.disconnect(sid)
        broadcast(emits)
        if room.is_ended:
            _close(room)
        if was_host:
            current_app.logger.info(f"[host-disconnect] pin={room.pin} sid={sid}")
        else:
            current_app.logger.info(f"[player-leave] pin={room.pin} sid={sid} remaining={len(room.players)}")


def handle_create_room(data=None):
    data = _payload(data)
    sid = _get_sid()
    pin = _registry().create_room(sid, data.get('title'))
    join_room(pin)
    current_app.logger.info(f"[room-created] pin={pin} host={sid}")
    emit('host:room_created', {'pin': pin})


def handle_player_join(data=None):
    data = _payload(data)
    room = _room_for(data)
    if room is None:
        emit('error:join', {'message': 'Room not found'})
        return
    sid = _get_sid()
    join_room(room.pin)
    broadcast(room.join(sid, data.get('name')))
    current_app.logger.info(f"[player-join] pin={room.pin} sid={sid} players={len(room.players)}")


def handle_player_answer(data=None):
    data = _payload(data)
    room = _room_for(data)
    if room is None:
        return
    broadcast(room.answer(_get_sid(), data.get('answer')))


def handle_start_question(data=None):
    data = _payload(data)
    room = _room_for(data)
    if room is None:
        return
    with room.lock:
        emits = room.start_question(_get_sid(), data.get('question'))
        if emits:
            question = room.current_question
            current_app.logger.info(
                f"[question-start] pin={room.pin} question={question.id} duration={question.duration_ms}ms"
            )
    broadcast(emits)


def handle_finish_question(data=None):
    room = _room_for(_payload(data))
    if room is None:
        return
    emits = room.finish_question(_get_sid())
    if emits:
        current_app.logger.info(f"[question-finish] pin={room.pin} players={len(room.players)}")
    broadcast(emits)


def handle_pause_question(data=None):
    room = _room_for(_payload(data))
    if room is None:
        return
    with room.lock:
        emits = room.pause_question(_get_sid())
        if emits:
            current_app.logger.info(f"[question-pause] pin={room.pin} remaining={room.state.remaining_ms}ms")
    broadcast(emits)


def handle_resume_question(data=None):
    room = _room_for(_payload(data))
    if room is None:
        return
    with room.lock:
        emits = room.resume_question(_get_sid())
        if emits:
            current_app.logger.info(f"[question-resume] pin={room.pin} ends_at={room.state.ends_at}")
    broadcast(emits)


def handle_set_meta(data=None):
    data = _payload(data)
    room = _room_for(data)
    if room is None:
        return
    broadcast(room.set_meta(_get_sid(), data.get('meta')))


def handle_interstitial(data=None):
    data = _payload(data)
    room = _room_for(data)
    if room is None:
        return
    broadcast(room.interstitial(_get_sid(), data))


def handle_skip_video(data=None):
    room = _room_for(_payload(data))
    if room is None:
        return
    broadcast(room.skip_video(_get_sid()))


def handle_show_scores(data=None):
    room = _room_for(_payload(data))
    if room is None:
        return
    broadcast(room.show_scores(_get_sid()))


def handle_end_game(data=None):
    room = _room_for(_payload(data))
    if room is None:
        return
    emits = room.end_game(_get_sid())
    if not emits:
        return
    broadcast(emits)
    _close(room)
    current_app.logger.info(f"[game-end] pin={room.pin}")


def handle_error(exc):
    event = getattr(request, 'event', None) or {}
    current_app.logger.exception(f"[socket-error] event={event.get('message')} sid={_get_sid()} error={exc!r}")


EVENT_HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'host:create_room': handle_create_room,
    'player:join': handle_player_join,
    'host:start_question': handle_start_question,
    'player:answer': handle_player_answer,
    'host:finish_question': handle_finish_question,
    'host:set_meta': handle_set_meta,
    'host:interstitial': handle_interstitial,
    'host:pause_question': handle_pause_question,
    'host:resume_question': handle_resume_question,
    'host:skip_video': handle_skip_video,
    'host:show_scores': handle_show_scores,
    'host:end_game': handle_end_game,
}


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register the quiz Socket.IO event handlers on the given namespace."""
    for event, handler in EVENT_HANDLERS.items():
        socketio.on_event(event, handler, namespace=namespace)
    socketio.on_error_default(handle_error)
