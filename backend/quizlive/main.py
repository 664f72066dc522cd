from flask import Blueprint, jsonify

from quizlive.services.quiz.room import now_ms

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Quiz Live server running'})


@main.route('/health')
def health():
    return jsonify({'ok': True, 'time': now_ms()})
