from datetime import datetime, timezone
from functools import wraps

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from quizroom import db
from quizroom.errors import MalformedInput
from quizroom.models import User
from quizroom.schemas import LoginRequest, RegisterRequest, parse_message

main = Blueprint('main', __name__)


def role_required(*roles):
    """Restrict a view to logged-in users holding one of ``roles``."""
    def decorator(view):
        @wraps(view)
        @login_required
        def wrapped(*args, **kwargs):
            if current_user.role not in roles:
                return jsonify({'error': 'Insufficient permissions'}), 403
            return view(*args, **kwargs)
        return wrapped
    return decorator


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the quiz room server!'})


@main.route('/health')
def health():
    orchestrator = current_app.extensions['quizroom']
    return jsonify({
        'status': 'ok',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'rooms': len(orchestrator.registry),
    })


@main.route('/api/auth/register', methods=['POST'])
def register():
    try:
        data = parse_message(RegisterRequest, request.get_json(silent=True))
    except MalformedInput as exc:
        return jsonify({'error': exc.message}), 400

    email = data.email.lower()
    if User.query.filter_by(email=email).first():
        return jsonify({'error': 'Email already registered'}), 400

    user = User(email=email, role=data.role)
    user.set_password(data.password)
    db.session.add(user)
    db.session.commit()
    login_user(user)
    current_app.logger.info(f"[register] user={user.id} role={user.role}")
    return jsonify({'user': user.to_dict()}), 201


@main.route('/api/auth/login', methods=['POST'])
def login():
    try:
        data = parse_message(LoginRequest, request.get_json(silent=True))
    except MalformedInput as exc:
        return jsonify({'error': exc.message}), 400

    user = User.query.filter_by(email=data.email.lower()).first()
    if user and user.check_password(data.password):
        login_user(user, remember=True)
        return jsonify({'user': user.to_dict()})
    return jsonify({'error': 'Invalid email or password'}), 401


@main.route('/api/auth/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Logged out successfully.'})


@main.route('/api/auth/me')
@login_required
def me():
    return jsonify({'user': current_user.to_dict()})
