from typing import Any, Dict, Iterable, List, Optional

from quizlive.models import Player, Question, coerce_number

BASE_POINTS = 500
ROUND_RESULTS_SIZE = 10
SHOW_SCORES_SIZE = 50
FINAL_LEADERBOARD_SIZE = 20


def is_correct(answer: Any, correct_index: Optional[int]) -> bool:
    if correct_index is None:
        return False
    value = coerce_number(answer)
    return value is not None and value == coerce_number(correct_index)


def points_for(player: Player, question: Question) -> int:
    """Base points plus one point per remaining tenth of a second."""
    if not is_correct(player.answer, question.correct_index):
        return 0
    answered_at = player.answered_at
    if answered_at is None:
        answered_at = question.started_at + question.duration_ms
    elapsed = max(0, answered_at - question.started_at)
    remaining = max(0, question.duration_sec * 1000 - elapsed)
    return BASE_POINTS + remaining // 100


def score_round(players: Iterable[Player], question: Question) -> List[Dict[str, Any]]:
    """Apply the round's points to every player and return per-player results."""
    results = []
    for player in players:
        add = points_for(player, question)
        player.score += add
        results.append({
            'name': player.name,
            'answer': player.answer,
            'correct': is_correct(player.answer, question.correct_index),
            'add': add,
            'score': player.score,
        })
    return results


def leaderboard(players: Iterable[Player], size: int) -> List[Dict[str, Any]]:
    # sorted() is stable, so equal scores keep roster order
    ranked = sorted(players, key=lambda p: p.score, reverse=True)
    return [p.leaderboard_entry() for p in ranked[:size]]
