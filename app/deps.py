from dataclasses import dataclass

from fastapi import HTTPException, Request, status
from sqlalchemy.orm import sessionmaker

from app.core import config
from app.db import SessionLocal, get_db
from app.domain.errors import (
    QuizError, NotFoundError, EmptyQuizError, InvalidInputError,
    StateConflictError, DownstreamDeliveryError, LedgerInvariantError,
)
from app.domain.inbound.router import InboundRouter
from app.domain.lessons.dispatcher import LessonDispatcher
from app.domain.lessons.scheduler import QuizStartScheduler, TimerFactory, default_timer
from app.domain.quiz.engine import QuizEngine
from app.services.notifier import Notifier, build_notifier

__all__ = ["Services", "build_services", "get_services", "get_db", "http_error"]


@dataclass
class Services:
    notifier: Notifier
    engine: QuizEngine
    scheduler: QuizStartScheduler
    dispatcher: LessonDispatcher
    inbound: InboundRouter


def build_services(notifier: Notifier | None = None, session_factory: sessionmaker = SessionLocal,
                   timer_factory: TimerFactory = default_timer) -> Services:
    """Arma el grafo de servicios una sola vez (al arrancar la app o en tests)."""
    notifier = notifier or build_notifier()
    engine = QuizEngine(notifier)
    scheduler = QuizStartScheduler(
        session_factory, engine.start,
        delay_sec=config.QUIZ_START_DELAY_SEC, timer_factory=timer_factory,
    )
    return Services(
        notifier=notifier,
        engine=engine,
        scheduler=scheduler,
        dispatcher=LessonDispatcher(notifier, scheduler),
        inbound=InboundRouter(engine, notifier),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def http_error(e: QuizError) -> HTTPException:
    """Error de dominio -> HTTPException con detail legible."""
    if isinstance(e, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, (EmptyQuizError, InvalidInputError)):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(e, StateConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(e, DownstreamDeliveryError):
        code = status.HTTP_502_BAD_GATEWAY
    elif isinstance(e, LedgerInvariantError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(e))
