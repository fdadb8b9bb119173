import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.deps import Services, get_db, get_services, http_error
from app.domain.errors import QuizError
from app.domain.quiz.catalog import get_quiz_with_questions, ordered_questions
from app.domain.users.service import normalize_phone
from app.models.quiz import AnswerEncoding
from app.schemas.quiz import StartQuizIn, StartQuizOut, QuizOut, QuestionOut

log = logging.getLogger("quiz")

router = APIRouter(prefix="/quizzes", tags=["quizzes"])

@router.get("/{quiz_id}", response_model=QuizOut)
def get_quiz(quiz_id: int, db: Session = Depends(get_db)):
    quiz = get_quiz_with_questions(db, quiz_id)
    if quiz is None:
        raise HTTPException(status_code=404, detail="Quiz no encontrado")
    return QuizOut(
        id=quiz.id,
        contentId=quiz.content_id,
        title=quiz.title,
        description=quiz.description,
        passingScore=quiz.passing_score,
        rewardCoins=quiz.reward_coins,
        answerEncoding=quiz.answer_encoding or AnswerEncoding.numeric.value,
        # sin correctAnswer: esto lo puede ver el cliente
        questions=[
            QuestionOut(id=q.id, order=q.order, question=q.question_text, options=list(q.options))
            for q in ordered_questions(quiz)
        ],
    )

@router.post("/{quiz_id}/start", response_model=StartQuizOut)
def start_quiz(quiz_id: int, body: StartQuizIn, db: Session = Depends(get_db), svc: Services = Depends(get_services)):
    """Arranque manual (sin esperar el delay tras el video)."""
    phone = normalize_phone(body.phone)
    if not phone:
        raise HTTPException(status_code=400, detail="Número de teléfono inválido")
    try:
        session_id = svc.engine.start(db, phone, quiz_id)
    except QuizError as e:
        log.warning("manual start quiz %s for %s failed: %s", quiz_id, phone, e)
        raise http_error(e)
    return StartQuizOut(sessionId=session_id)
