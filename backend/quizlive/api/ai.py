from flask import Blueprint, current_app, jsonify, request

from quizlive.services.quiz.questions import QuestionGenerator

ai = Blueprint('ai', __name__)


def clamp_count(value, default: int, maximum: int) -> int:
    try:
        count = int(float(value))
    except (TypeError, ValueError):
        count = 0
    return max(1, min(maximum, count or default))


@ai.route('/generate', methods=['POST'])
def generate_questions():
    """
    Generates a multiple-choice quiz for the given topic text.
    Falls back to locally built questions when no AI provider is configured.
    """
    data = request.get_json(silent=True)
    if data is None:
        return jsonify({'error': 'bad_request'}), 400
    if not isinstance(data, dict):
        data = {}
    cfg = current_app.config
    count = clamp_count(
        data.get('count'),
        int(cfg.get('AI_DEFAULT_QUESTION_COUNT', 8)),
        int(cfg.get('AI_MAX_QUESTION_COUNT', 20)),
    )
    prompt_text = str(data.get('promptText') or '').strip()
    generator = current_app.extensions.get('quiz_generator') or QuestionGenerator.from_config(cfg)
    quiz = generator.generate(prompt_text, count)
    current_app.logger.info(f"[ai-generate] count={count} returned={len(quiz['questions'])}")
    return jsonify(quiz)
