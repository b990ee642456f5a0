import re

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from quizroom.errors import MalformedInput
from quizroom.main import role_required
from quizroom.schemas import QuizIn, UUID_PATTERN, parse_message
from quizroom.services.quizzes import create_quiz, get_quiz, list_quizzes

quizzes = Blueprint('quizzes', __name__)

_UUID_RE = re.compile(UUID_PATTERN)


@quizzes.route('', methods=['GET'])
@role_required('TEACHER', 'ADMIN')
def get_quizzes():
    """
    Lists the current teacher's quizzes, newest first, without answer keys.
    """
    return jsonify([q.to_dict(include_answers=False) for q in list_quizzes(current_user.id)])


@quizzes.route('/<string:quiz_id>', methods=['GET'])
@role_required('TEACHER', 'ADMIN')
def get_quiz_detail(quiz_id):
    """
    Returns one quiz with its questions, if it belongs to the current teacher.
    """
    if not _UUID_RE.match(quiz_id):
        return jsonify({'error': 'Invalid Quiz ID format'}), 400
    quiz = get_quiz(quiz_id, current_user.id)
    if not quiz:
        return jsonify({'error': 'Quiz not found'}), 404
    return jsonify(quiz.to_dict())


@quizzes.route('', methods=['POST'])
@role_required('TEACHER', 'ADMIN')
def post_quiz():
    """
    Creates a quiz with its questions for the current teacher.
    """
    try:
        payload = parse_message(QuizIn, request.get_json(silent=True))
    except MalformedInput as exc:
        return jsonify({'error': 'Validation failed', 'details': exc.message}), 400

    quiz = create_quiz(current_user.id, payload)
    current_app.logger.info(f"[quiz-created] quiz={quiz.id} questions={len(quiz.questions)} teacher={current_user.id}")
    return jsonify(quiz.to_dict()), 201
