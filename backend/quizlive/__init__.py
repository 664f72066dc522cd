import json
import logging
import sys
from logging import StreamHandler

import click
from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

from config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = list(flask_app.config.get('ALLOWED_ORIGINS') or [])

    CORS(flask_app, supports_credentials=True, origins=allowed_origins,
         methods=['GET', 'POST', 'OPTIONS'])

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from quizlive.services.quiz import RoomRegistry
    from quizlive.services.quiz.questions import QuestionGenerator

    # Each app owns its rooms; nothing survives a restart
    flask_app.extensions['quiz_registry'] = RoomRegistry(
        default_duration_sec=int(flask_app.config.get('DEFAULT_QUESTION_DURATION_SEC', 20)),
    )
    flask_app.extensions['quiz_generator'] = QuestionGenerator.from_config(flask_app.config)

    from quizlive.main import main
    flask_app.register_blueprint(main)

    from quizlive.api.ai import ai, clamp_count
    flask_app.register_blueprint(ai, url_prefix='/ai')

    from quizlive.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/'))

    @click.command('generate-quiz')
    @click.argument('topic')
    @click.option('--count', default=None, help='Number of questions to generate.')
    def generate_quiz_command(topic, count):
        """Generates a quiz for TOPIC and prints it as JSON."""
        cfg = flask_app.config
        count = clamp_count(count, int(cfg.get('AI_DEFAULT_QUESTION_COUNT', 8)),
                            int(cfg.get('AI_MAX_QUESTION_COUNT', 20)))
        quiz = flask_app.extensions['quiz_generator'].generate(topic, count)
        click.echo(json.dumps(quiz, ensure_ascii=False, indent=2))

    flask_app.cli.add_command(generate_quiz_command)

    if not flask_app.debug and not flask_app.testing:
        stream_handler = StreamHandler(sys.stdout)
        stream_handler.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))
        flask_app.logger.addHandler(stream_handler)
        flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))
        logging.getLogger('quizlive').setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))
    flask_app.logger.info('Quiz Live app started')

    return flask_app
