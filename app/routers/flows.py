from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.deps import get_db
from app.domain.flows.export import build_flow_definition
from app.domain.quiz.catalog import get_quiz_with_questions

router = APIRouter(prefix="/flows", tags=["flows"])

def _flow_for(db: Session, quiz_id: int) -> dict:
    quiz = get_quiz_with_questions(db, quiz_id)
    if quiz is None:
        raise HTTPException(status_code=404, detail="Quiz no encontrado")
    return build_flow_definition(quiz)

@router.get("/quiz/{quiz_id}")
def get_quiz_flow(quiz_id: int, db: Session = Depends(get_db)):
    return _flow_for(db, quiz_id)

# el endpoint de datos del flujo hace POST a la misma URL
@router.post("/quiz/{quiz_id}")
def post_quiz_flow(quiz_id: int, db: Session = Depends(get_db)):
    return _flow_for(db, quiz_id)
