import math
from typing import Any, Dict, List, Optional

MIN_DURATION_SEC = 5
MAX_OPTIONS = 6
DEFAULT_PLAYER_NAME = 'Player'


def coerce_number(value: Any) -> Optional[float]:
    """Return value as a finite float, or None if it does not look numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def coerce_index(value: Any) -> Optional[int]:
    number = coerce_number(value)
    if number is None or number != int(number):
        return None
    return int(number)


class Player:
    def __init__(self, name: Any = None):
        self.name = str(name or '').strip() or DEFAULT_PLAYER_NAME
        self.score = 0
        self.answer: Optional[int] = None
        self.answered_at: Optional[int] = None

    @property
    def has_answered(self) -> bool:
        return self.answer is not None

    def reset_answer(self) -> None:
        self.answer = None
        self.answered_at = None

    def to_dict(self):
        return {
            'name': self.name,
            'score': self.score,
            'answered': self.has_answered,
        }

    def leaderboard_entry(self):
        return {'name': self.name, 'score': self.score}


class Question:
    def __init__(self, id, text, options, correct_index, started_at, duration_sec, type='mc', duration_ms=None):
        self.id = id
        self.text = text
        self.type = type
        self.options = options
        self.correct_index = correct_index
        self.started_at = started_at
        self.duration_sec = duration_sec
        # Exact answer window; duration_sec is its floor in whole seconds
        self.duration_ms = duration_ms if duration_ms is not None else duration_sec * 1000

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]], now: int, default_duration_sec: int = 20) -> 'Question':
        """Build a round from a host-supplied question, defaulting whatever is missing.

        The duration is never shorter than MIN_DURATION_SEC whatever the host asks for.
        """
        payload = payload if isinstance(payload, dict) else {}
        requested = coerce_number(payload.get('durationSec'))
        if not requested:
            requested = default_duration_sec
        requested = max(MIN_DURATION_SEC, requested)
        options = payload.get('options')
        options = [str(o) for o in options[:MAX_OPTIONS]] if isinstance(options, list) else []
        correct = payload.get('correctIndex', payload.get('correct'))
        return cls(
            id=payload.get('id') or now,
            text=str(payload.get('text') or ''),
            type=payload.get('type') or 'mc',
            options=options,
            correct_index=coerce_index(correct),
            started_at=now,
            duration_sec=int(requested),
            duration_ms=int(requested * 1000),
        )

    def to_dict(self, reveal: bool = False):
        data = {
            'id': self.id,
            'text': self.text,
            'type': self.type,
            'options': list(self.options),
            'startedAt': self.started_at,
            'durationSec': self.duration_sec,
        }
        if reveal:
            data['correctIndex'] = self.correct_index
        return data


# Room states. A room is in exactly one of these at a time.

class Lobby:
    name = 'lobby'


class QuestionActive:
    name = 'question_active'

    def __init__(self, question: Question, ends_at: int):
        self.question = question
        self.ends_at = ends_at


class QuestionPaused:
    name = 'question_paused'

    def __init__(self, question: Question, remaining_ms: int):
        self.question = question
        self.remaining_ms = remaining_ms


class Ended:
    name = 'ended'


def roster(players: Dict[str, Player]) -> List[dict]:
    return [p.to_dict() for p in players.values()]
