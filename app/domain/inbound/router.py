import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core import config
from app.domain.errors import QuizError, NotFoundError, EmptyQuizError, DownstreamDeliveryError
from app.domain.quiz.catalog import find_active_session, first_available_quiz, get_quiz_with_questions
from app.domain.quiz.engine import QuizEngine
from app.domain.users.service import upsert_user
from app.models.scheduled_quiz_start import ScheduledQuizStart
from app.models.user import User
from app.services.notifier import Notifier

log = logging.getLogger("inbound")

START_WORDS = {"QUIZ", "START", "EMPEZAR", "COMENZAR"}
HELP_WORDS = {"HELP", "AYUDA"}
BALANCE_WORDS = {"SALDO", "BALANCE", "PUNTOS"}

HELP_TEXT = (
    "👋 ¡Hola! Para comenzar un quiz, primero mira el video de capacitación que te enviamos.\n\n"
    "Comandos:\n"
    "• *QUIZ*: empezar el quiz\n"
    "• *SALDO*: ver tus {cur}\n"
    "• *AYUDA*: ver este mensaje"
)
NO_QUIZ_TEXT = "🤖 No tienes un quiz activo. Escribe *QUIZ* para empezar o *AYUDA* para ver las opciones."
NO_QUIZ_AVAILABLE_TEXT = "📭 Por ahora no hay quizzes disponibles. Espera a recibir tu próxima lección."
GENERIC_ERROR_TEXT = "⚠️ Tuvimos un problema procesando tu mensaje. Intenta de nuevo en unos minutos."


@dataclass(frozen=True)
class RouteOutcome:
    action: str          # answer | start | help | balance | unknown | error
    completed: bool = False


class InboundRouter:
    def __init__(self, engine: QuizEngine, notifier: Notifier):
        self.engine = engine
        self.notifier = notifier

    def _reply(self, to: str, body: str) -> None:
        result = self.notifier.send(to, body)
        if not result.success:
            log.warning("reply to %s failed: %s", to, result.error)

    def route(self, db: Session, phone: str, text: str | None) -> RouteOutcome:
        """Respuesta entrante -> motor (si hay sesión activa) o comando. Nunca lanza por texto desconocido."""
        user = upsert_user(db, phone)
        body = (text or "").strip()

        if find_active_session(db, user.id) is not None:
            log.info("routing answer from %s: %r", phone, body)
            try:
                outcome = self.engine.answer(db, phone, body)
            except DownstreamDeliveryError as e:
                log.warning("answer from %s recorded but delivery failed: %s", phone, e)
                return RouteOutcome("error")
            except QuizError as e:
                log.error("answer from %s failed: %s", phone, e)
                self._reply(phone, GENERIC_ERROR_TEXT)
                return RouteOutcome("error")
            return RouteOutcome("answer", completed=outcome.completed)

        command = body.upper()
        if command in START_WORDS:
            return self._start(db, user)
        if command in HELP_WORDS:
            self._reply(phone, HELP_TEXT.format(cur=config.REWARD_CURRENCY))
            return RouteOutcome("help")
        if command in BALANCE_WORDS:
            db.refresh(user)
            self._reply(phone, f"💰 Tu saldo actual es de {int(user.l_coins or 0)} {config.REWARD_CURRENCY}.")
            return RouteOutcome("balance")

        log.info("no active quiz for %s, unknown text %r", phone, body)
        self._reply(phone, NO_QUIZ_TEXT)
        return RouteOutcome("unknown")

    def _pick_quiz_id(self, db: Session, user: User) -> int | None:
        """Último quiz agendado para el usuario; si no hay, el primero disponible."""
        last = db.execute(
            select(ScheduledQuizStart.quiz_id)
            .where(ScheduledQuizStart.user_phone == user.phone)
            .order_by(ScheduledQuizStart.id.desc())
            .limit(1)
        ).scalar_one_or_none()
        if last is not None and get_quiz_with_questions(db, last) is not None:
            return last
        quiz = first_available_quiz(db)
        return quiz.id if quiz else None

    def _start(self, db: Session, user: User) -> RouteOutcome:
        quiz_id = self._pick_quiz_id(db, user)
        if quiz_id is None:
            self._reply(user.phone, NO_QUIZ_AVAILABLE_TEXT)
            return RouteOutcome("start")
        try:
            self.engine.start(db, user.phone, quiz_id)
        except (NotFoundError, EmptyQuizError) as e:
            log.warning("start by command failed for %s: %s", user.phone, e)
            self._reply(user.phone, NO_QUIZ_AVAILABLE_TEXT)
        except DownstreamDeliveryError as e:
            log.warning("start by command not delivered to %s: %s", user.phone, e)
            return RouteOutcome("error")
        return RouteOutcome("start")
