from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from app.domain.lessons.scheduler import QuizStartScheduler
from app.models.quiz_session import QuizSession, SessionStatus
from app.models.scheduled_quiz_start import ScheduledQuizStart, TaskStatus
from tests.conftest import PHONE


def _scheduler(session_factory, engine, timers, delay=30):
    return QuizStartScheduler(session_factory, engine.start, delay_sec=delay, timer_factory=timers)


def _task(db, task_id):
    db.expire_all()
    return db.get(ScheduledQuizStart, task_id)


def test_schedule_persists_and_arms_timer(db, session_factory, engine, timers, quiz):
    sched = _scheduler(session_factory, engine, timers)
    task = sched.schedule(db, PHONE, quiz.id, quiz.content_id)

    assert task.status == TaskStatus.pending.value
    assert len(timers.timers) == 1
    assert timers.timers[0].delay == 30 and timers.timers[0].started


def test_fire_starts_quiz_once(db, session_factory, engine, notifier, timers, quiz):
    sched = _scheduler(session_factory, engine, timers)
    task_id = sched.schedule(db, PHONE, quiz.id).id

    timers.timers[0].fire()
    task = _task(db, task_id)
    assert task.status == TaskStatus.done.value
    assert task.attempts == 1
    session = db.get(QuizSession, task.session_id)
    assert session.status == SessionStatus.active.value
    assert "*Pregunta 1/5:*" in notifier.last

    # disparo duplicado: no-op
    sent = len(notifier.sent)
    assert sched.fire(task_id) is False
    assert len(notifier.sent) == sent
    assert len(db.execute(select(QuizSession)).scalars().all()) == 1


def test_cancel_prevents_firing(db, session_factory, engine, notifier, timers, quiz):
    sched = _scheduler(session_factory, engine, timers)
    task_id = sched.schedule(db, PHONE, quiz.id).id

    assert sched.cancel(db, task_id) is True
    assert timers.timers[0].cancelled
    assert sched.fire(task_id) is False
    assert _task(db, task_id).status == TaskStatus.cancelled.value
    assert notifier.sent == []
    assert sched.cancel(db, task_id) is False


def test_failed_start_marks_task_failed(db, session_factory, engine, timers, make_quiz):
    empty = make_quiz([])
    sched = _scheduler(session_factory, engine, timers)
    task_id = sched.schedule(db, PHONE, empty.id).id

    assert sched.fire(task_id) is True
    task = _task(db, task_id)
    assert task.status == TaskStatus.failed.value
    assert "EmptyQuizError" in task.last_error


def test_run_due_only_fires_due_tasks(db, session_factory, engine, timers, quiz):
    sched = _scheduler(session_factory, engine, timers)
    soon = sched.schedule(db, PHONE, quiz.id, delay_sec=0).id
    later = sched.schedule(db, "+5215550002", quiz.id, delay_sec=3600).id

    processed = sched.run_due(now=datetime.now(timezone.utc) + timedelta(seconds=5))
    assert processed == [soon]
    assert _task(db, soon).status == TaskStatus.done.value
    assert _task(db, later).status == TaskStatus.pending.value


def test_recover_rearms_pending(db, session_factory, engine, timers, quiz):
    first = _scheduler(session_factory, engine, timers)
    first.schedule(db, PHONE, quiz.id)
    done = first.schedule(db, "+5215550002", quiz.id).id
    first.fire(done)

    # proceso nuevo: solo la pendiente vuelve a tener timer
    fresh_timers = type(timers)()
    second = _scheduler(session_factory, engine, fresh_timers)
    assert second.recover() == 1
    assert len(fresh_timers.timers) == 1
    assert 0 <= fresh_timers.timers[0].delay <= 30


def test_list_tasks_filters(db, session_factory, engine, timers, quiz):
    sched = _scheduler(session_factory, engine, timers)
    a = sched.schedule(db, PHONE, quiz.id).id
    sched.schedule(db, "+5215550002", quiz.id)
    sched.cancel(db, a)

    assert [t.id for t in sched.list_tasks(db, phone=PHONE)] == [a]
    assert len(sched.list_tasks(db, status=TaskStatus.pending.value)) == 1
