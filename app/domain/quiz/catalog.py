from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from app.models.content import Content
from app.models.quiz import Quiz, Question
from app.models.quiz_session import QuizSession, SessionStatus
from app.models.video_asset import VideoAsset


def get_quiz_with_questions(db: Session, quiz_id: int) -> Optional[Quiz]:
    """
    Quiz + preguntas en orden canónico (order ASC, id ASC).
    Los mapas de respuestas se indexan por la posición en ESTA lista; nadie más re-ordena.
    """
    return db.get(Quiz, quiz_id)


def ordered_questions(quiz: Quiz) -> List[Question]:
    return list(quiz.questions or [])


@dataclass
class ContentBundle:
    content: Content
    video_asset: Optional[VideoAsset]
    quiz: Optional[Quiz]


def get_content_bundle(db: Session, content_id: int) -> Optional[ContentBundle]:
    content = db.get(Content, content_id)
    if content is None:
        return None
    return ContentBundle(content=content, video_asset=content.video_asset, quiz=content.quiz)


def find_active_session(db: Session, user_id: int, quiz_id: int | None = None, *, for_update: bool = False) -> Optional[QuizSession]:
    """Sesión activa más reciente del usuario (de cualquier quiz salvo que se filtre)."""
    stmt = select(QuizSession).where(
        QuizSession.user_id == user_id,
        QuizSession.status == SessionStatus.active.value,
    )
    if quiz_id is not None:
        stmt = stmt.where(QuizSession.quiz_id == quiz_id)
    stmt = stmt.order_by(QuizSession.started_at.desc(), QuizSession.id.desc()).limit(1)
    if for_update:
        stmt = stmt.with_for_update()
    return db.execute(stmt).scalars().first()


def first_available_quiz(db: Session) -> Optional[Quiz]:
    """Primer quiz activo con preguntas, siguiendo el orden de los contenidos."""
    rows = db.execute(
        select(Quiz)
        .join(Content, Content.id == Quiz.content_id)
        .where(Quiz.is_active.is_(True), Content.is_active.is_(True))
        .order_by(Content.order_index.asc(), Content.id.asc())
    ).scalars().all()
    for quiz in rows:
        if quiz.questions:
            return quiz
    return None


def replace_questions(db: Session, quiz: Quiz, items: Iterable[dict]) -> List[Question]:
    """
    Reemplaza las preguntas del quiz renumerando order 0..n-1 sin huecos.
    El caller debe garantizar que no hay sesiones activas (los mapas de respuestas son posicionales).
    """
    quiz.questions.clear()
    db.flush()
    created: List[Question] = []
    for i, it in enumerate(items):
        q = Question(
            question_text=str(it["question"]).strip(),
            options=list(it["options"]),
            correct_answer=int(it["correctAnswer"]),
            explanation=(it.get("explanation") or None),
            order=i,
        )
        quiz.questions.append(q)
        created.append(q)
    db.flush()
    return created


def count_active_sessions(db: Session, quiz_id: int) -> int:
    """Sesiones activas del quiz (de cualquier usuario)."""
    return int(db.execute(
        select(func.count()).select_from(QuizSession).where(
            QuizSession.quiz_id == quiz_id,
            QuizSession.status == SessionStatus.active.value,
        )
    ).scalar_one())
