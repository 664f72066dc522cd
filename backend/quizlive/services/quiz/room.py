import functools
import threading
import time
from collections import namedtuple
from typing import Any, Callable, Dict, List, Optional

from quizlive.models import (
    Ended,
    Lobby,
    Player,
    Question,
    QuestionActive,
    QuestionPaused,
    coerce_index,
    coerce_number,
    roster,
)
from .scoring import (
    FINAL_LEADERBOARD_SIZE,
    ROUND_RESULTS_SIZE,
    SHOW_SCORES_SIZE,
    leaderboard,
    score_round,
)

DEFAULT_TITLE = 'New Quiz'
DEFAULT_INTERSTITIAL_MESSAGE = 'Next question coming up...'
MIN_RESUME_MS = 1000

# An outbound event. `to` is either the room pin (broadcast) or a single connection id.
Emit = namedtuple('Emit', ['event', 'payload', 'to'])


def now_ms() -> int:
    return int(time.time() * 1000)


def transition(method):
    """Run a room transition under the room lock, one event at a time."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            return method(self, *args, **kwargs)
    return wrapper


class Room:
    """One live quiz session.

    Every transition returns the list of events it produced. An empty list
    means the event was ignored: wrong sender, wrong state or a room that has
    already ended. Only `join`, `answer` and `disconnect` accept events from
    connections other than the host.
    """

    def __init__(self, pin: str, host_sid: str, title: Any = None,
                 clock: Callable[[], int] = now_ms, default_duration_sec: int = 20):
        self.pin = pin
        self.host_sid = host_sid
        self.title = str(title or '').strip() or DEFAULT_TITLE
        self.meta: Dict[str, Any] = {'title': self.title, 'coverImageUrl': '', 'coverDescription': ''}
        self.players: Dict[str, Player] = {}
        self.state = Lobby()
        self.clock = clock
        self.default_duration_sec = default_duration_sec
        self.lock = threading.RLock()

    # ---- state helpers ----

    @property
    def is_ended(self) -> bool:
        return isinstance(self.state, Ended)

    @property
    def current_question(self) -> Optional[Question]:
        if isinstance(self.state, (QuestionActive, QuestionPaused)):
            return self.state.question
        return None

    def is_host(self, sid: str) -> bool:
        return not self.is_ended and sid == self.host_sid

    def has_connection(self, sid: str) -> bool:
        return sid == self.host_sid or sid in self.players

    def _to_room(self, event: str, payload: Any = None) -> Emit:
        return Emit(event, payload, self.pin)

    def _roster_update(self) -> Emit:
        return self._to_room('room:players', {'players': roster(self.players)})

    def _end(self) -> None:
        self.state = Ended()
        self.players.clear()

    # ---- players ----

    @transition
    def join(self, sid: str, name: Any = None) -> List[Emit]:
        if self.is_ended:
            return []
        self.players[sid] = Player(name)
        return [self._roster_update(), Emit('player:joined', {'pin': self.pin}, sid)]

    @transition
    def answer(self, sid: str, answer: Any) -> List[Emit]:
        if not isinstance(self.state, QuestionActive):
            return []
        player = self.players.get(sid)
        if player is None or player.has_answered:
            return []
        now = self.clock()
        if now > self.state.ends_at:
            return []
        index = coerce_index(answer)
        if index is None:
            return []
        player.answer = index
        player.answered_at = now
        answered = sum(1 for p in self.players.values() if p.has_answered)
        return [Emit('host:progress', {'answered': answered, 'total': len(self.players)}, self.host_sid)]

    @transition
    def disconnect(self, sid: str) -> List[Emit]:
        if self.is_ended:
            return []
        if sid == self.host_sid:
            self._end()
            return [self._to_room('room:ended')]
        if sid in self.players:
            del self.players[sid]
            return [self._roster_update()]
        return []

    # ---- question lifecycle ----

    @transition
    def start_question(self, sid: str, payload: Optional[Dict[str, Any]] = None) -> List[Emit]:
        # Starting over an active or paused round discards it.
        if not self.is_host(sid):
            return []
        now = self.clock()
        question = Question.from_payload(payload, now, self.default_duration_sec)
        ends_at = now + question.duration_ms
        self.state = QuestionActive(question, ends_at)
        for player in self.players.values():
            player.reset_answer()
        return [
            self._to_room('interstitial:hide'),
            self._to_room('question:start', {'question': question.to_dict(), 'endsAt': ends_at}),
        ]

    @transition
    def finish_question(self, sid: str) -> List[Emit]:
        if not self.is_host(sid) or self.current_question is None:
            return []
        question = self.current_question
        results = score_round(self.players.values(), question)
        self.state = Lobby()
        return [self._to_room('question:results', {
            'correctIndex': question.correct_index,
            'results': results,
            'leaderboard': leaderboard(self.players.values(), ROUND_RESULTS_SIZE),
        })]

    @transition
    def pause_question(self, sid: str) -> List[Emit]:
        if not self.is_host(sid) or not isinstance(self.state, QuestionActive):
            return []
        remaining = max(0, self.state.ends_at - self.clock())
        self.state = QuestionPaused(self.state.question, remaining)
        return [self._to_room('question:paused')]

    @transition
    def resume_question(self, sid: str) -> List[Emit]:
        if not self.is_host(sid) or not isinstance(self.state, QuestionPaused):
            return []
        ends_at = self.clock() + max(MIN_RESUME_MS, self.state.remaining_ms)
        self.state = QuestionActive(self.state.question, ends_at)
        return [self._to_room('question:resumed', {'endsAt': ends_at})]

    # ---- side channels ----

    @transition
    def set_meta(self, sid: str, meta: Any = None) -> List[Emit]:
        if not self.is_host(sid):
            return []
        if isinstance(meta, dict):
            self.meta.update(meta)
        if isinstance(self.meta.get('title'), str):
            self.title = self.meta['title']
        return [self._to_room('room:meta', dict(self.meta))]

    @transition
    def interstitial(self, sid: str, payload: Optional[Dict[str, Any]] = None) -> List[Emit]:
        if not self.is_host(sid):
            return []
        payload = payload if isinstance(payload, dict) else {}
        duration = coerce_number(payload.get('durationMs'))
        return [self._to_room('interstitial:show', {
            'message': str(payload.get('message') or DEFAULT_INTERSTITIAL_MESSAGE),
            'imageUrl': payload.get('imageUrl') or '',
            'youtubeUrl': payload.get('youtubeUrl') or '',
            'bgColor': payload.get('bgColor') or '',
            'until': self.clock() + int(duration) if duration and duration > 0 else None,
        })]

    @transition
    def skip_video(self, sid: str) -> List[Emit]:
        if not self.is_host(sid):
            return []
        return [self._to_room('video:skip')]

    @transition
    def show_scores(self, sid: str) -> List[Emit]:
        if not self.is_host(sid):
            return []
        return [self._to_room('scores:show', {'leaderboard': leaderboard(self.players.values(), SHOW_SCORES_SIZE)})]

    @transition
    def end_game(self, sid: str) -> List[Emit]:
        if not self.is_host(sid):
            return []
        final = leaderboard(self.players.values(), FINAL_LEADERBOARD_SIZE)
        self._end()
        return [
            self._to_room('game:final', {'leaderboard': final}),
            self._to_room('room:ended'),
        ]
