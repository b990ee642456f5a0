import uuid
from datetime import datetime, timezone

from flask_login import UserMixin

from quizroom import bcrypt, db
from quizroom.services.games.room import Question


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = 'users'
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='TEACHER')  # TEACHER, ADMIN
    created_at = db.Column(db.DateTime(timezone=True), default=_now)
    quizzes = db.relationship('Quiz', back_populates='teacher', cascade='all, delete-orphan')

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'role': self.role,
        }


class Quiz(db.Model):
    __tablename__ = 'quiz_packages'
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    teacher_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_now)
    teacher = db.relationship('User', back_populates='quizzes')
    questions = db.relationship(
        'QuizQuestion',
        back_populates='quiz',
        order_by='QuizQuestion.position',
        cascade='all, delete-orphan',
    )

    def to_dict(self, include_answers=True):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'teacher_id': self.teacher_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'questions': [q.to_dict(include_answer=include_answers) for q in self.questions],
        }


class QuizQuestion(db.Model):
    __tablename__ = 'questions'
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    quiz_id = db.Column(db.String(36), db.ForeignKey('quiz_packages.id', ondelete='CASCADE'), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    question_text = db.Column(db.Text, nullable=False)
    image_url = db.Column(db.Text, nullable=True)
    options = db.Column(db.JSON, nullable=False)
    correct_idx = db.Column(db.Integer, nullable=False)
    time_limit = db.Column(db.Integer, nullable=False, default=15)
    points = db.Column(db.Integer, nullable=False, default=20)
    quiz = db.relationship('Quiz', back_populates='questions')

    def to_domain(self) -> Question:
        return Question(
            text=self.question_text,
            options=tuple(self.options),
            correct_option_index=self.correct_idx,
            time_limit_seconds=self.time_limit or 15,
            base_points=self.points or 20,
            image_ref=self.image_url,
        )

    def to_dict(self, include_answer=True):
        data = {
            'id': self.id,
            'question_text': self.question_text,
            'image_url': self.image_url,
            'options': list(self.options or []),
            'time_limit': self.time_limit,
            'points': self.points,
        }
        if include_answer:
            data['correct_idx'] = self.correct_idx
        return data
