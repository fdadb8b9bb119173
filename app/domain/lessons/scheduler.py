import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from app.domain.errors import QuizError
from app.models.scheduled_quiz_start import ScheduledQuizStart, TaskStatus

log = logging.getLogger("scheduler")

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


def default_timer(delay: float, fn: Callable[[], None]) -> threading.Timer:
    t = threading.Timer(delay, fn)
    t.daemon = True
    return t


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(dt: datetime) -> datetime:
    # SQLite devuelve datetimes naive aunque la columna sea timezone=True
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


class QuizStartScheduler:
    """
    Arranque diferido del quiz tras el video.
    Cada tarea es una fila en scheduled_quiz_starts (sobrevive reinicios) + un Timer en memoria.
    - fire() reclama la fila con un UPDATE condicional pending->running: disparos duplicados son no-op.
    - cancel() solo afecta tareas pending.
    - recover() re-arma los timers de las pendientes al arrancar el proceso.
    """

    def __init__(self, session_factory: sessionmaker, start_quiz: Callable[[Session, str, int], int],
                 delay_sec: int = 30, timer_factory: TimerFactory = default_timer):
        self.session_factory = session_factory
        self.start_quiz = start_quiz
        self.delay_sec = delay_sec
        self.timer_factory = timer_factory
        self._timers: Dict[int, threading.Timer] = {}
        self._lock = threading.Lock()

    # ---- timers ----
    def _arm(self, task_id: int, delay: float) -> None:
        timer = self.timer_factory(max(0.0, delay), lambda: self.fire(task_id))
        with self._lock:
            old = self._timers.pop(task_id, None)
            if old:
                old.cancel()
            self._timers[task_id] = timer
        timer.start()

    def _disarm(self, task_id: int) -> None:
        with self._lock:
            timer = self._timers.pop(task_id, None)
        if timer:
            timer.cancel()

    # ---- API ----
    def schedule(self, db: Session, phone: str, quiz_id: int, content_id: int | None = None,
                 delay_sec: int | None = None) -> ScheduledQuizStart:
        delay = self.delay_sec if delay_sec is None else delay_sec
        task = ScheduledQuizStart(
            user_phone=phone,
            quiz_id=quiz_id,
            content_id=content_id,
            run_at=_utcnow() + timedelta(seconds=delay),
            status=TaskStatus.pending.value,
            attempts=0,
        )
        db.add(task)
        db.commit()
        db.refresh(task)
        self._arm(task.id, delay)
        log.info("scheduled quiz %s for %s in %ss (task %s)", quiz_id, phone, delay, task.id)
        return task

    def cancel(self, db: Session, task_id: int) -> bool:
        res = db.execute(
            update(ScheduledQuizStart)
            .where(ScheduledQuizStart.id == task_id, ScheduledQuizStart.status == TaskStatus.pending.value)
            .values(status=TaskStatus.cancelled.value)
        )
        db.commit()
        self._disarm(task_id)
        cancelled = bool(res.rowcount)
        log.info("cancel task %s -> %s", task_id, cancelled)
        return cancelled

    def list_tasks(self, db: Session, phone: str | None = None, status: str | None = None,
                   limit: int = 50) -> List[ScheduledQuizStart]:
        stmt = select(ScheduledQuizStart)
        if phone:
            stmt = stmt.where(ScheduledQuizStart.user_phone == phone)
        if status:
            stmt = stmt.where(ScheduledQuizStart.status == status)
        return db.execute(stmt.order_by(ScheduledQuizStart.id.desc()).limit(limit)).scalars().all()

    def fire(self, task_id: int) -> bool:
        """Ejecuta la tarea si sigue pendiente. True si este disparo la procesó."""
        with self._lock:
            self._timers.pop(task_id, None)
        db = self.session_factory()
        try:
            claimed = db.execute(
                update(ScheduledQuizStart)
                .where(ScheduledQuizStart.id == task_id, ScheduledQuizStart.status == TaskStatus.pending.value)
                .values(status=TaskStatus.running.value, attempts=ScheduledQuizStart.attempts + 1)
            )
            db.commit()
            if not claimed.rowcount:
                log.info("task %s already handled, skipping", task_id)
                return False

            task = db.get(ScheduledQuizStart, task_id)
            try:
                session_id = self.start_quiz(db, task.user_phone, task.quiz_id)
            except QuizError as e:
                db.rollback()
                task = db.get(ScheduledQuizStart, task_id)
                task.status = TaskStatus.failed.value
                task.last_error = f"{type(e).__name__}: {e}"
                db.commit()
                log.warning("task %s failed: %s", task_id, e)
                return True

            task = db.get(ScheduledQuizStart, task_id)
            task.status = TaskStatus.done.value
            task.session_id = session_id
            task.last_error = None
            db.commit()
            log.info("task %s done: session %s", task_id, session_id)
            return True
        except Exception:
            log.exception("task %s crashed", task_id)
            db.rollback()
            db.execute(
                update(ScheduledQuizStart)
                .where(ScheduledQuizStart.id == task_id)
                .values(status=TaskStatus.failed.value, last_error="unexpected error")
            )
            db.commit()
            return True
        finally:
            db.close()

    def run_due(self, now: Optional[datetime] = None) -> List[int]:
        """Dispara en línea todas las pendientes vencidas (cron / tests). Devuelve los ids procesados."""
        now = now or _utcnow()
        db = self.session_factory()
        try:
            pending = db.execute(
                select(ScheduledQuizStart.id, ScheduledQuizStart.run_at)
                .where(ScheduledQuizStart.status == TaskStatus.pending.value)
                .order_by(ScheduledQuizStart.run_at.asc())
            ).all()
        finally:
            db.close()
        due = [tid for tid, run_at in pending if _aware(run_at) <= now]
        return [tid for tid in due if self.fire(tid)]

    def recover(self) -> int:
        """Re-arma timers de tareas pendientes (tras un reinicio)."""
        db = self.session_factory()
        try:
            pending = db.execute(
                select(ScheduledQuizStart.id, ScheduledQuizStart.run_at)
                .where(ScheduledQuizStart.status == TaskStatus.pending.value)
            ).all()
        finally:
            db.close()
        now = _utcnow()
        for tid, run_at in pending:
            self._arm(tid, (_aware(run_at) - now).total_seconds())
        if pending:
            log.info("recovered %s pending quiz start(s)", len(pending))
        return len(pending)

    def shutdown(self) -> None:
        with self._lock:
            timers, self._timers = list(self._timers.values()), {}
        for t in timers:
            t.cancel()
