import os

from dotenv import load_dotenv

load_dotenv()


def _origins(value):
    return [o.strip() for o in value.split(',') if o.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    ALLOWED_ORIGINS = _origins(os.environ.get('ALLOWED_ORIGINS') or 'http://localhost:5173,http://127.0.0.1:5173')
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Used when a host starts a question without a usable duration (seconds)
    DEFAULT_QUESTION_DURATION_SEC = int(os.environ.get('DEFAULT_QUESTION_DURATION_SEC', '20'))
    # Question generation. Without an API key a local mock generator is used.
    OPENAI_API_KEY = os.environ.get('OPENAI_API_KEY')
    OPENAI_BASE_URL = os.environ.get('OPENAI_BASE_URL')
    OPENAI_MODEL = os.environ.get('OPENAI_MODEL', 'gpt-4o-mini')
    AI_TIMEOUT_SEC = float(os.environ.get('AI_TIMEOUT_SEC', '6'))
    AI_DEFAULT_QUESTION_COUNT = int(os.environ.get('AI_DEFAULT_QUESTION_COUNT', '8'))
    AI_MAX_QUESTION_COUNT = int(os.environ.get('AI_MAX_QUESTION_COUNT', '20'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    PORT = int(os.environ.get('PORT', '4000'))
