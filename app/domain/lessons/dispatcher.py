import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.core import config
from app.domain.errors import (
    ContentNotFoundError, VideoNotFoundError, QuizNotFoundError, EmptyQuizError, DownstreamDeliveryError,
)
from app.domain.lessons.scheduler import QuizStartScheduler
from app.domain.quiz.catalog import get_content_bundle
from app.domain.users.service import upsert_user
from app.models.content import Content
from app.models.quiz import Quiz
from app.services.notifier import Notifier
from app.services.video_publisher import resolve_video_url, is_direct_media

log = logging.getLogger("lessons")


@dataclass(frozen=True)
class DispatchResult:
    video_url: str
    message_id: Optional[str]
    task_id: Optional[int]


def lesson_message(content: Content, quiz: Quiz, video_url: str, *, with_link: bool = True) -> str:
    reward = int(quiz.reward_coins or 0)
    msg = f"🎬 *{content.title}*\n\n"
    msg += f"{content.description or 'Mira el video completo y gana puntos'}\n\n"
    if with_link:
        msg += f"{video_url}\n\n"
    msg += f"⏱️ Duración: {config.DEFAULT_VIDEO_DURATION}\n"
    msg += f"🪙 Recompensa: {reward} {config.REWARD_CURRENCY}"
    return msg


class LessonDispatcher:
    def __init__(self, notifier: Notifier, scheduler: QuizStartScheduler):
        self.notifier = notifier
        self.scheduler = scheduler

    def dispatch(self, db: Session, phone: str, content_id: int) -> DispatchResult:
        """Envía el video de la lección y agenda el arranque del quiz."""
        bundle = get_content_bundle(db, content_id)
        if bundle is None:
            raise ContentNotFoundError(f"Content not found: {content_id}")
        if bundle.video_asset is None:
            raise VideoNotFoundError(f"VideoAsset not found for content: {content_id}")
        quiz = bundle.quiz
        if quiz is None:
            raise QuizNotFoundError(f"Quiz not found for content: {content_id}")
        if not quiz.questions:
            raise EmptyQuizError(f"Quiz has no questions: {quiz.id}")

        video_url = resolve_video_url(db, content_id)
        if not video_url:
            raise VideoNotFoundError(f"No video URL available for content: {content_id}")

        upsert_user(db, phone)

        media = video_url if is_direct_media(video_url) else None
        body = lesson_message(bundle.content, quiz, video_url, with_link=media is None)
        result = self.notifier.send(phone, body, media_url=media)
        if not result.success:
            log.warning("lesson %s not delivered to %s: %s", content_id, phone, result.error)
            raise DownstreamDeliveryError(f"Failed to send lesson: {result.error}")
        log.info("lesson %s sent to %s (%s)", content_id, phone, video_url)

        task_id = None
        try:
            task_id = self.scheduler.schedule(db, phone, quiz.id, content_id).id
        except Exception:
            # el video ya salió: agendar es best-effort
            log.exception("could not schedule quiz %s for %s", quiz.id, phone)
            db.rollback()

        return DispatchResult(video_url=video_url, message_id=result.message_id, task_id=task_id)
