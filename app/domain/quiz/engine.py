"""
Motor conversacional del quiz.

Estados por (usuario, quiz):
    SIN_SESIÓN -> ACTIVA(0) -> ACTIVA(1) -> ... -> ACTIVA(n-1) -> COMPLETADA

- start() crea ACTIVA(0) y cierra cualquier ACTIVA previa del mismo quiz (sin intento).
- answer() válida en i: ACTIVA(i+1) si i+1 < n, si no COMPLETADA (terminal).
- answer() inválida: no hay transición, se re-pregunta.
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core import config
from app.core.locks import KeyedLock
from app.db.types import validate_answer_map
from app.domain.ledger import service as ledger
from app.domain.errors import (
    QuizNotFoundError, EmptyQuizError, InvalidAnswerError, StateConflictError,
    DownstreamDeliveryError, LedgerInvariantError,
)
from app.domain.quiz.catalog import get_quiz_with_questions, ordered_questions, find_active_session
from app.domain.quiz.scoring import score_answers
from app.domain.users.service import get_user_by_phone, upsert_user
from app.models.quiz import Quiz, AnswerEncoding
from app.models.quiz_attempt import QuizAttempt
from app.models.quiz_session import QuizSession, SessionStatus
from app.models.user import User
from app.services.notifier import Notifier

log = logging.getLogger("quiz")

KEYCAPS = ["1️⃣", "2️⃣", "3️⃣", "4️⃣", "5️⃣", "6️⃣", "7️⃣", "8️⃣", "9️⃣", "🔟"]
LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"


@dataclass(frozen=True)
class AnswerOutcome:
    completed: bool
    accepted: bool = True


@dataclass(frozen=True)
class QuizSummary:
    session_id: int
    attempt_id: int
    correct: int
    total: int
    score: int
    passed: bool
    reward: int
    balance: int


# -------------------------------------------------------------------
# Render y parseo (funciones puras)
# -------------------------------------------------------------------

def option_label(encoding: str, index: int) -> str:
    if encoding == AnswerEncoding.letter.value:
        return f"*{LETTERS[index]})*"
    return KEYCAPS[index] if index < len(KEYCAPS) else f"{index + 1}."


def answer_hint(encoding: str, n_options: int) -> str:
    if encoding == AnswerEncoding.letter.value:
        symbols = [LETTERS[i] for i in range(n_options)]
    else:
        symbols = [str(i + 1) for i in range(n_options)]
    if len(symbols) == 1:
        return symbols[0]
    return f"{', '.join(symbols[:-1])} o {symbols[-1]}"


def format_question(quiz: Quiz, index: int) -> str:
    """Texto de la pregunta `index` (0-based). Determinista: se usa también para reenvíos."""
    questions = ordered_questions(quiz)
    if not 0 <= index < len(questions):
        raise IndexError(f"question index {index} out of range for quiz {quiz.id}")
    q = questions[index]
    encoding = quiz.answer_encoding or AnswerEncoding.numeric.value

    msg = ""
    if index == 0:
        msg += "📝 *¡Hora del Quiz!*\n\n"
        msg += f"Responde estas preguntas para ganar {config.REWARD_CURRENCY}:\n\n"
    msg += f"*Pregunta {index + 1}/{len(questions)}:*\n\n"
    msg += f"{q.question_text}\n\n"
    if encoding == AnswerEncoding.letter.value:
        msg += "Responde con la letra de tu opción:\n\n"
    else:
        msg += "Responde con el número de tu opción:\n\n"
    for i, option in enumerate(q.options):
        msg += f"{option_label(encoding, i)} {option}\n"
    return msg.rstrip("\n")


def parse_answer(raw: str | None, encoding: str, n_options: int) -> int:
    """
    Texto libre -> índice de opción 0-based.
    numeric: se quitan los caracteres que no son dígitos y el número resultante es 1-based.
    letter:  se quitan los que no son letras y debe quedar exactamente una.
    """
    text = (raw or "").strip()
    if encoding == AnswerEncoding.letter.value:
        letters = re.sub(r"[^A-Z]", "", text.upper())
        if len(letters) != 1:
            raise InvalidAnswerError(f"no single letter in {raw!r}")
        index = LETTERS.index(letters)
    else:
        digits = re.sub(r"\D", "", text).lstrip("0")
        if not digits:
            raise InvalidAnswerError(f"no option number in {raw!r}")
        # más dígitos que el número de opciones: fuera de rango sin convertir
        if len(digits) > len(str(n_options)):
            raise InvalidAnswerError(f"option number too long ({len(digits)} digits)")
        index = int(digits) - 1
    if not 0 <= index < n_options:
        raise InvalidAnswerError(f"option {index + 1} out of range 1..{n_options}")
    return index


def invalid_answer_message(encoding: str, n_options: int) -> str:
    what = "la letra" if encoding == AnswerEncoding.letter.value else "el número"
    return f"❌ Por favor responde solo con {what} de tu opción ({answer_hint(encoding, n_options)})"


def feedback_message(question_text: str, correct_option: str, is_correct: bool) -> str:
    if is_correct:
        return f"✅ ¡Correcto!\n\n{question_text}\n\nLa respuesta \"{correct_option}\" es correcta."
    return f"❌ Incorrecto\n\nLa respuesta correcta es: {correct_option}\n\n{question_text}"


def summary_message(summary: QuizSummary) -> str:
    cur = config.REWARD_CURRENCY
    msg = "🎉 *¡Quiz completado!*\n\n*Resultados:*\n\n"
    msg += f"Respuestas correctas: {summary.correct}/{summary.total}\n\n"
    msg += f"Calificación: {summary.score}%\n"
    msg += f"Estado: {'APROBADO ✅' if summary.passed else 'REPROBADO ❌'}\n\n"
    if summary.passed and summary.reward > 0:
        msg += f"¡Has ganado {summary.reward} {cur}! 🪙\n\n"
    elif not summary.passed:
        msg += f"Intenta de nuevo para ganar {cur}\n\n"
    msg += f"Saldo actual: {summary.balance} {cur}"
    return msg


# -------------------------------------------------------------------
# Motor
# -------------------------------------------------------------------

class QuizEngine:
    def __init__(self, notifier: Notifier, locks: Optional[KeyedLock] = None):
        self.notifier = notifier
        self.locks = locks or KeyedLock()

    # ---- envío ----
    def _deliver(self, to: str, body: str) -> None:
        result = self.notifier.send(to, body)
        if not result.success:
            raise DownstreamDeliveryError(result.error or "send failed")

    def _notify(self, to: str, body: str) -> bool:
        """Envío best-effort: el fallo se registra y no afecta el estado."""
        result = self.notifier.send(to, body)
        if not result.success:
            log.warning("non-fatal send to %s failed: %s", to, result.error)
        return result.success

    # ---- helpers ----
    @staticmethod
    def _load_quiz(db: Session, quiz_id: int) -> Quiz:
        quiz = get_quiz_with_questions(db, quiz_id)
        if quiz is None:
            raise QuizNotFoundError(f"Quiz not found: {quiz_id}")
        if not quiz.questions:
            raise EmptyQuizError(f"Quiz has no questions: {quiz_id}")
        return quiz

    @staticmethod
    def _close_active(db: Session, user_id: int, quiz_id: int) -> int:
        res = db.execute(
            update(QuizSession)
            .where(
                QuizSession.user_id == user_id,
                QuizSession.quiz_id == quiz_id,
                QuizSession.status == SessionStatus.active.value,
            )
            .values(status=SessionStatus.completed.value, completed_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="fetch")
        )
        return res.rowcount or 0

    # ---- operaciones ----
    def start(self, db: Session, phone: str, quiz_id: int) -> int:
        """Crea una sesión nueva en la pregunta 0 y envía la primera pregunta. Devuelve el id de sesión."""
        quiz = self._load_quiz(db, quiz_id)
        user = upsert_user(db, phone)

        with self.locks.hold(phone):
            closed = self._close_active(db, user.id, quiz.id)
            if closed:
                log.info("closed %s previous active session(s) for user %s quiz %s", closed, user.id, quiz.id)

            session = QuizSession(
                user_id=user.id, quiz_id=quiz.id,
                current_index=0, answers={}, status=SessionStatus.active.value,
            )
            db.add(session)
            db.flush()

            try:
                self._deliver(phone, format_question(quiz, 0))
            except DownstreamDeliveryError:
                # sin primera pregunta no hay sesión: todo vuelve atrás
                db.rollback()
                log.warning("start aborted for %s quiz %s: first question not delivered", phone, quiz_id)
                raise

            db.commit()
            log.info("started session %s for %s quiz %s", session.id, phone, quiz.id)
            return session.id

    def answer(self, db: Session, phone: str, raw_text: str) -> AnswerOutcome:
        with self.locks.hold(phone):
            user = get_user_by_phone(db, phone)
            if user is None:
                return AnswerOutcome(completed=False, accepted=False)

            session = find_active_session(db, user.id, for_update=True)
            if session is None:
                return AnswerOutcome(completed=False, accepted=False)

            quiz = get_quiz_with_questions(db, session.quiz_id)
            questions = ordered_questions(quiz) if quiz else []
            if not questions:
                db.rollback()
                log.error("session %s points to missing/empty quiz %s", session.id, session.quiz_id)
                return AnswerOutcome(completed=False, accepted=False)

            idx = int(session.current_index or 0)
            if idx >= len(questions):
                # índice fuera de rango: ya respondió todo, solo falta cerrar
                return self._complete_or_noop(db, session, quiz, phone)

            question = questions[idx]
            encoding = quiz.answer_encoding or AnswerEncoding.numeric.value
            try:
                choice = parse_answer(raw_text, encoding, len(question.options))
            except InvalidAnswerError as e:
                db.rollback()
                log.info("invalid answer from %s on q%s: %s", phone, idx + 1, e)
                self._notify(phone, invalid_answer_message(encoding, len(question.options)))
                return AnswerOutcome(completed=False, accepted=False)

            # se sobreescribe si es un reintento sobre el mismo índice
            answers: Dict[int, int] = dict(session.answers or {})
            answers[idx] = choice
            session.answers = answers
            db.add(session)
            db.flush()

            is_correct = choice == question.correct_answer
            correct_option = question.options[question.correct_answer]
            self._notify(phone, feedback_message(question.question_text, correct_option, is_correct))

            next_idx = idx + 1
            if next_idx < len(questions):
                try:
                    self._deliver(phone, format_question(quiz, next_idx))
                except DownstreamDeliveryError:
                    # la respuesta queda guardada, el índice NO avanza
                    db.commit()
                    log.warning("next question %s not delivered to %s; index kept at %s", next_idx + 1, phone, idx)
                    raise
                session.current_index = next_idx
                db.add(session)
                db.commit()
                log.info("session %s advanced to %s/%s", session.id, next_idx + 1, len(questions))
                return AnswerOutcome(completed=False)

            return self._complete_or_noop(db, session, quiz, phone)

    def _complete_or_noop(self, db: Session, session: QuizSession, quiz: Quiz, phone: str) -> AnswerOutcome:
        try:
            self.complete(db, session, quiz, phone=phone)
        except StateConflictError as e:
            log.info("completion skipped: %s", e)
            return AnswerOutcome(completed=False)
        return AnswerOutcome(completed=True)

    def complete(self, db: Session, session: QuizSession, quiz: Quiz, *, phone: str | None = None) -> QuizSummary:
        """
        Cierra la sesión: un QuizAttempt y, si aprobó, el crédito en el ledger, todo en un commit.
        El resumen se envía DESPUÉS del commit (si falla, el estado ya es final).
        """
        if session.status != SessionStatus.active.value:
            raise StateConflictError(f"session {session.id} is {session.status}, not active")

        questions = ordered_questions(quiz)
        answers = dict(session.answers or {})
        result = score_answers([q.correct_answer for q in questions], answers, quiz.passing_score)

        session.status = SessionStatus.completed.value
        session.completed_at = datetime.now(timezone.utc)
        db.add(session)

        attempt = QuizAttempt(
            user_id=session.user_id,
            quiz_id=quiz.id,
            session_id=session.id,
            score=result.score,
            passed=result.passed,
            correct_count=result.correct,
            total_questions=result.total,
            answers=answers,
        )
        db.add(attempt)

        reward = 0
        try:
            db.flush()
            if result.passed and int(quiz.reward_coins or 0) > 0:
                reward = int(quiz.reward_coins)
                ledger.credit(
                    db, session.user_id, reward, attempt.id,
                    f"Recompensa por completar quiz: {quiz.title}",
                    content_id=quiz.content_id,
                    commit=False,
                )
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise StateConflictError(f"session {session.id} already completed: {e.orig}")
        except LedgerInvariantError:
            db.rollback()
            raise

        user = db.get(User, session.user_id)
        summary = QuizSummary(
            session_id=session.id,
            attempt_id=attempt.id,
            correct=result.correct,
            total=result.total,
            score=result.score,
            passed=result.passed,
            reward=reward,
            balance=int(user.l_coins or 0),
        )
        log.info(
            "session %s completed: %s/%s score=%s passed=%s reward=%s",
            session.id, result.correct, result.total, result.score, result.passed, reward,
        )
        to = phone or user.phone
        self._notify(to, summary_message(summary))
        return summary

    def submit_flow_response(self, db: Session, phone: str, quiz_id: int, answers: Mapping[int, int]) -> QuizSummary:
        """
        Respuestas completas llegadas de un flujo estructurado (pantallas).
        Pasa por la misma finalización que el modo conversacional.
        """
        quiz = self._load_quiz(db, quiz_id)
        questions = ordered_questions(quiz)
        try:
            clean = validate_answer_map(answers)
        except ValueError as e:
            raise InvalidAnswerError(str(e))
        for qi, oi in clean.items():
            if qi >= len(questions) or oi >= len(questions[qi].options):
                raise InvalidAnswerError(f"answer {qi}:{oi} out of range for quiz {quiz_id}")

        user = upsert_user(db, phone)
        with self.locks.hold(phone):
            self._close_active(db, user.id, quiz.id)
            session = QuizSession(
                user_id=user.id, quiz_id=quiz.id,
                current_index=len(questions) - 1, answers=clean, status=SessionStatus.active.value,
            )
            db.add(session)
            db.flush()
            return self.complete(db, session, quiz, phone=phone)
