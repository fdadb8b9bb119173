import sys
from pathlib import Path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path: sys.path.insert(0, str(ROOT))

from sqlalchemy import select
from app.db import Base, SessionLocal, engine
from app import models  # noqa: F401
from app.models.content import Content
from app.models.quiz import Quiz
from app.models.video_asset import VideoAsset, AssetStatus
from app.domain.quiz.catalog import replace_questions
from app.domain.users.service import upsert_user

DEMO_PHONE = "+5214774046609"

CONTENT = {
    "title": "Introducción a Kraft Singles",
    "description": "Aprende sobre los ingredientes y beneficios de Kraft Singles",
    "type": "video",
    "order_index": 1,
}

# reemplaza con tu video real
YOUTUBE_VIDEO_ID = "dQw4w9WgXcQ"

QUIZ = {
    "title": "Quiz: Kraft Singles",
    "description": "Pon a prueba tus conocimientos sobre Kraft Singles",
    "passing_score": 70,
    "reward_coins": 50,
}

QUESTIONS = [
    {"question": "¿Cuál es el ingrediente principal de Kraft Singles?",
     "options": ["Grasa Vegetal", "Leche de Vaca y Calcio", "Saborizante Artificial", "Agua"], "correctAnswer": 1},
    {"question": "¿Qué diferencia a Kraft Singles de las imitaciones?",
     "options": ["Es más barato", "El color naranja", "Es queso de verdad", "Tiene más grasa"], "correctAnswer": 2},
    {"question": "¿Cuántos gramos de proteína tiene una rebanada de Kraft Singles?",
     "options": ["2g", "4g", "6g", "8g"], "correctAnswer": 2},
    {"question": "¿Kraft Singles contiene lácteos reales?",
     "options": ["No, es completamente artificial", "Sí, contiene leche y calcio", "Solo contiene calcio", "Depende del sabor"],
     "correctAnswer": 1},
    {"question": "¿Cuál es el beneficio principal de Kraft Singles?",
     "options": ["Es más económico", "Es queso real con calcio", "No necesita refrigeración", "Tiene más sabor"],
     "correctAnswer": 1},
]

def seed(db):
    upsert_user(db, DEMO_PHONE, name="Usuario Demo", email="demo@lactalis.com")

    content = db.execute(select(Content).where(Content.title == CONTENT["title"])).scalar_one_or_none()
    if content is None:
        content = Content(**CONTENT, is_active=True); db.add(content); db.flush()

    asset = content.video_asset or VideoAsset(content_id=content.id)
    asset.youtube_video_id = YOUTUBE_VIDEO_ID
    asset.youtube_url = f"https://www.youtube.com/watch?v={YOUTUBE_VIDEO_ID}"
    asset.youtube_status = AssetStatus.ready.value
    db.add(asset)

    quiz = content.quiz
    if quiz is None:
        quiz = Quiz(content_id=content.id, **QUIZ); db.add(quiz); db.flush()
    replace_questions(db, quiz, QUESTIONS)
    db.commit()
    return content, quiz

def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        content, quiz = seed(db)
        print(f"Demo seed OK: content={content.id} quiz={quiz.id} ({len(QUESTIONS)} preguntas) user={DEMO_PHONE}")
    finally:
        db.close()

if __name__ == "__main__":
    main()
