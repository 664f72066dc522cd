"""Question generation: an OpenAI-backed generator with a sanitizing pass.

Whatever the model returns, callers always get questions with exactly four
distinct short options and a valid correct index. Without an API key (or when
the model call fails) a mock generator built from the topic text is used.
"""

import json
import logging
import random
import re
from typing import Any, Dict, List, Optional

from openai import OpenAI

logger = logging.getLogger(__name__)

OPTION_COUNT = 4
OPTION_MAX_LEN = 80
TEXT_MAX_LEN = 200
TITLE_MAX_LEN = 60
DEFAULT_OPTION = 'Option'
DEFAULT_TEXT = 'Question'
DEFAULT_TITLE = 'New Quiz'
DEFAULT_DURATION_SEC = 15
MIN_DURATION_SEC = 5
MAX_DURATION_SEC = 120

_PREFIX_RE = re.compile(r"^([\-–—•]|\d+[.)]|\(\d+\)|[A-D][.)]|\([A-D]\))\s*")
_LABEL_RE = re.compile(r"^\s*(correct answer|answer|correct|true|false|wrong)\s*:\s*", re.IGNORECASE)
_QUESTION_PREFIX_RE = re.compile(r'^question:?\s*', re.IGNORECASE)
_QUIZ_WORD_RE = re.compile(r'\bquiz\b', re.IGNORECASE)
_YEAR_RE = re.compile(r'(1\d{3}|20\d{2})(?:\s*-\s*(1\d{3}|20\d{2}))?')
_YEAR_PAIR_RE = re.compile(r'(1\d{3}|20\d{2})(?:\D+(1\d{3}|20\d{2}))?')

YEAR_SHIFTS = (-7, -5, -3, 3, 5, 7, 10, -10)
DISTRACTOR_FILLERS = ('Another period', 'Alternative choice', 'Different figure', 'Other version')
PLACEHOLDER_FILLERS = ('Option A', 'Option B', 'Option C', 'Option D')

SYSTEM_PROMPT = (
    'You generate factual multiple-choice trivia questions. Output strictly valid JSON only with schema: '
    '{ "title": string, "questions": [ { "text": string, "options": string[4], "correct": number(0-3), '
    '"durationSec": number } ] }. No markdown. Exactly 4 short distinct options, only one correct. '
    'Do not copy or echo the user input. Do not use the word "quiz" in questions or options. durationSec is about 15.'
)


def sanitize_option(value: Any) -> str:
    text = str(value or '').strip()
    text = _PREFIX_RE.sub('', text, count=1)
    text = _LABEL_RE.sub('', text, count=1).strip()
    text = re.sub(r'\s+', ' ', text).strip()[:OPTION_MAX_LEN]
    return text or DEFAULT_OPTION


def canonical(value: Any) -> str:
    """Comparison key for options: case, quotes, brackets and dash styles ignored; years normalized."""
    text = sanitize_option(value).lower()
    text = re.sub(r'[“”"\'`]+', '', text)
    text = re.sub(r'[()\[\]{}*]+', '', text)
    text = re.sub(r'[–—‑−]', '-', text)
    text = re.sub(r'\s*-\s*', '-', text)
    match = _YEAR_RE.search(text)
    if match:
        first = int(match.group(1))
        if match.group(2):
            second = int(match.group(2))
            return f'{min(first, second)}-{max(first, second)}'
        return str(first)
    return text


def topic_words(topic_text: str) -> List[str]:
    cleaned = re.sub(r'[^\w\s-]', ' ', topic_text or '')
    words = []
    for word in cleaned.split()[:12]:
        if len(word) >= 3 and word not in words:
            words.append(word)
    return words


def strip_topic(text: str, words: List[str]) -> str:
    out = _QUIZ_WORD_RE.sub('', str(text or '')).strip()
    for word in words:
        out = re.sub(re.escape(word), '', out, flags=re.IGNORECASE).strip()
    return re.sub(r'\s+', ' ', out).strip()


def year_distractors(correct_text: str, need: int, seen: Dict[str, int]) -> List[str]:
    out: List[str] = []
    match = _YEAR_PAIR_RE.search(str(correct_text or ''))
    if match:
        first = int(match.group(1))
        second = int(match.group(2)) if match.group(2) else None
        for shift in YEAR_SHIFTS:
            if len(out) >= need:
                break
            candidate = f'{first + shift}-{second + shift}' if second else str(first + shift)
            if canonical(candidate) not in seen:
                out.append(candidate)
    for filler in DISTRACTOR_FILLERS:
        if len(out) >= need:
            break
        if canonical(filler) not in seen:
            out.append(filler)
    return out


def _dedupe(options: List[str], correct: int):
    """Drop repeated options, remapping the correct index onto the surviving copy."""
    seen: Dict[str, int] = {}
    unique: List[str] = []
    for i, option in enumerate(options):
        key = canonical(option)
        if key not in seen:
            seen[key] = len(unique)
            unique.append(option)
        elif i == correct:
            correct = seen[key]
    return unique, seen, correct


def _clamp_duration(value: Any) -> int:
    try:
        duration = int(float(value))
    except (TypeError, ValueError):
        duration = 0
    return max(MIN_DURATION_SEC, min(MAX_DURATION_SEC, duration or DEFAULT_DURATION_SEC))


def sanitize_question(raw: Dict[str, Any], words: List[str], rng: random.Random) -> Dict[str, Any]:
    text = _QUESTION_PREFIX_RE.sub('', str(raw.get('text') or ''), count=1)[:TEXT_MAX_LEN]
    text = strip_topic(text, words) or DEFAULT_TEXT

    options = raw.get('options')
    options = [sanitize_option(o) for o in options[:OPTION_COUNT]] if isinstance(options, list) else []
    try:
        correct = int(raw.get('correct', raw.get('correctIndex')) or 0)
    except (TypeError, ValueError):
        correct = 0
    correct = max(0, min(OPTION_COUNT - 1, correct))
    correct_text = options[correct] if correct < len(options) else (options[0] if options else '')

    unique, seen, correct = _dedupe(options, correct)
    if not unique:
        unique, seen, correct = [correct_text or DEFAULT_OPTION], {}, 0
        seen[canonical(unique[0])] = 0
    if len(unique) < OPTION_COUNT:
        need = OPTION_COUNT - len(unique)
        for extra in (sanitize_option(a) for a in year_distractors(correct_text, need, seen)):
            key = canonical(extra)
            if key not in seen:
                seen[key] = len(unique)
                unique.append(extra)
        for filler in PLACEHOLDER_FILLERS:
            if len(unique) >= OPTION_COUNT:
                break
            key = canonical(filler)
            if key not in seen:
                seen[key] = len(unique)
                unique.append(filler)

    options = [strip_topic(o, words) or DEFAULT_OPTION for o in unique[:OPTION_COUNT]]
    if not 0 <= correct < len(options):
        correct = 0

    order = list(range(len(options)))
    rng.shuffle(order)
    options = [options[i] for i in order]
    correct = order.index(correct)

    # Stripping topic words can make two options collide again.
    final, final_seen, correct = _dedupe(options, correct)
    final = final[:OPTION_COUNT]
    counter = 1
    while len(final) < OPTION_COUNT:
        candidate = f'{DEFAULT_OPTION} {counter}'
        counter += 1
        key = canonical(candidate)
        if key not in final_seen:
            final_seen[key] = len(final)
            final.append(candidate)
    if not 0 <= correct < len(final):
        correct = 0

    return {
        'text': text,
        'options': final,
        'correctIndex': correct,
        'durationSec': _clamp_duration(raw.get('durationSec')),
    }


def sanitize_question_list(raw_questions: Any, count: int, topic_text: str = '',
                           rng: Optional[random.Random] = None) -> List[Dict[str, Any]]:
    rng = rng or random.Random()
    words = topic_words(topic_text)
    items = raw_questions if isinstance(raw_questions, list) else []
    return [sanitize_question(q if isinstance(q, dict) else {}, words, rng) for q in items[:count]]


class QuestionGenerator:
    def __init__(self, api_key: Optional[str] = None, model: str = 'gpt-4o-mini',
                 base_url: Optional[str] = None, timeout: float = 6.0,
                 rng: Optional[random.Random] = None):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.rng = rng or random.Random()

    @classmethod
    def from_config(cls, config) -> 'QuestionGenerator':
        return cls(
            api_key=config.get('OPENAI_API_KEY'),
            model=config.get('OPENAI_MODEL') or 'gpt-4o-mini',
            base_url=config.get('OPENAI_BASE_URL'),
            timeout=float(config.get('AI_TIMEOUT_SEC', 6)),
        )

    def generate(self, topic_text: str, count: int) -> Dict[str, Any]:
        topic_text = str(topic_text or '').strip()
        if self.api_key:
            try:
                return self._generate_with_openai(topic_text, count)
            except Exception as exc:
                logger.warning(f"[ai-fallback] model={self.model} error={exc!r}")
        return self._generate_mock(topic_text, count)

    def _generate_with_openai(self, topic_text: str, count: int) -> Dict[str, Any]:
        client = OpenAI(api_key=self.api_key, base_url=self.base_url, timeout=self.timeout)
        user = '\n'.join([
            f'Topic or source text: {topic_text or "general knowledge"}',
            f'Number of questions: {count}',
            'Rules:',
            '- Short, clear factual questions.',
            '- 4 short distinct options, only one correct, no labels like correct/wrong.',
        ])
        chat = client.chat.completions.create(
            model=self.model,
            response_format={'type': 'json_object'},
            messages=[
                {'role': 'system', 'content': SYSTEM_PROMPT},
                {'role': 'user', 'content': user},
            ],
        )
        content = chat.choices[0].message.content or '{}'
        parsed = json.loads(content)
        if not isinstance(parsed, dict) or not isinstance(parsed.get('questions'), list):
            raise ValueError('model returned no question list')
        return {
            'title': str(parsed.get('title') or DEFAULT_TITLE)[:TITLE_MAX_LEN],
            'questions': sanitize_question_list(parsed['questions'], count, topic_text, self.rng),
        }

    def _generate_mock(self, topic_text: str, count: int) -> Dict[str, Any]:
        base = topic_text or 'General knowledge'
        seeds = [s.strip() for s in re.split(r'\n+|[.!?]+\s+', base.replace('\r', '')) if s.strip()]
        questions = []
        for i in range(count):
            seed = seeds[i % len(seeds)] if seeds else base
            questions.append({
                'text': f'Question: {seed[:80]}',
                'options': [
                    seed[:24] or 'Option A',
                    base[2:26] or 'Option B',
                    base[4:28] or 'Option C',
                    base[6:30] or 'Option D',
                ],
                'correct': self.rng.randrange(OPTION_COUNT),
                'durationSec': DEFAULT_DURATION_SEC,
            })
        return {'title': DEFAULT_TITLE, 'questions': sanitize_question_list(questions, count, topic_text, self.rng)}
