import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.deps import Services, get_db, get_services, http_error
from app.domain.errors import QuizError
from app.domain.users.service import normalize_phone
from app.models.scheduled_quiz_start import ScheduledQuizStart, TaskStatus
from app.schemas.lesson import SendLessonIn, SendLessonOut, ScheduledTaskOut, RunDueOut

log = logging.getLogger("lessons")

router = APIRouter(prefix="/lessons", tags=["lessons"])

def _task_out(t: ScheduledQuizStart) -> ScheduledTaskOut:
    return ScheduledTaskOut(
        id=t.id,
        userPhone=t.user_phone,
        quizId=t.quiz_id,
        contentId=t.content_id,
        runAt=t.run_at,
        status=t.status,
        attempts=int(t.attempts or 0),
        lastError=t.last_error,
        sessionId=t.session_id,
    )

@router.post("/send", response_model=SendLessonOut)
def send_lesson(body: SendLessonIn, db: Session = Depends(get_db), svc: Services = Depends(get_services)):
    """Envía el video de la lección y agenda el quiz."""
    phone = normalize_phone(body.phone)
    if not phone:
        raise HTTPException(status_code=400, detail="Número de teléfono inválido")
    try:
        res = svc.dispatcher.dispatch(db, phone, body.contentId)
    except QuizError as e:
        log.warning("send lesson %s to %s failed: %s", body.contentId, phone, e)
        raise http_error(e)
    return SendLessonOut(videoUrl=res.video_url, messageId=res.message_id, taskId=res.task_id)

@router.get("/scheduled", response_model=List[ScheduledTaskOut])
def list_scheduled(
    phone: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    svc: Services = Depends(get_services),
):
    if status and status not in {s.value for s in TaskStatus}:
        raise HTTPException(status_code=400, detail=f"status inválido: {status}")
    tasks = svc.scheduler.list_tasks(db, phone=normalize_phone(phone) if phone else None, status=status, limit=limit)
    return [_task_out(t) for t in tasks]

@router.delete("/scheduled/{task_id}")
def cancel_scheduled(task_id: int, db: Session = Depends(get_db), svc: Services = Depends(get_services)):
    task = db.get(ScheduledQuizStart, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Tarea no encontrada")
    if not svc.scheduler.cancel(db, task_id):
        db.refresh(task)
        raise HTTPException(status_code=409, detail=f"La tarea ya está en estado {task.status}")
    return {"ok": True, "id": task_id, "status": TaskStatus.cancelled.value}

@router.post("/scheduled/run-due", response_model=RunDueOut)
def run_due(svc: Services = Depends(get_services)):
    """Dispara ya las tareas vencidas (útil con cron o si el proceso estuvo caído)."""
    return RunDueOut(processed=svc.scheduler.run_due())
