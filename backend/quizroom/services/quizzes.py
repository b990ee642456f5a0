"""Quiz store access: the lookup contract the game engine consumes, plus authoring."""
from typing import List, Optional

from quizroom import db
from quizroom.models import Quiz, QuizQuestion
from quizroom.schemas import QuizIn
from quizroom.services.games.room import QuizScript


def get_quiz(quiz_id: str, owner_id: Optional[str] = None) -> Optional[Quiz]:
    query = Quiz.query.filter(db.func.lower(Quiz.id) == quiz_id.lower())
    if owner_id:
        query = query.filter(db.func.lower(Quiz.teacher_id) == owner_id.lower())
    return query.first()


def resolve_quiz(quiz_id: str, owner_id: Optional[str] = None) -> Optional[QuizScript]:
    """Load a quiz as an immutable question script, or None if it is not visible to ``owner_id``."""
    quiz = get_quiz(quiz_id, owner_id)
    if quiz is None:
        return None
    return QuizScript(
        id=quiz.id,
        title=quiz.title,
        questions=tuple(q.to_domain() for q in quiz.questions),
    )


def list_quizzes(teacher_id: str) -> List[Quiz]:
    return (
        Quiz.query.filter_by(teacher_id=teacher_id)
        .order_by(Quiz.created_at.desc())
        .all()
    )


def create_quiz(teacher_id: str, payload: QuizIn) -> Quiz:
    quiz = Quiz(teacher_id=teacher_id, title=payload.title, description=payload.description or None)
    for position, q in enumerate(payload.questions):
        quiz.questions.append(QuizQuestion(
            position=position,
            question_text=q.question_text,
            image_url=q.image_url or None,
            options=list(q.options),
            correct_idx=q.correct_idx,
            time_limit=q.time_limit,
            points=q.points,
        ))
    db.session.add(quiz)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return quiz
