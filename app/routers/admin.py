import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.ai import gemini
from app.deps import get_db
from app.domain.quiz.catalog import count_active_sessions, get_content_bundle, ordered_questions, replace_questions
from app.models.quiz import Quiz
from app.models.video_asset import VideoAsset
from app.schemas.admin import (
    CheckDataOut, VideoAssetOut, VideoUrlIn, VideoUrlOut, GenerateQuizIn, GenerateQuizOut,
)
from app.services.video_publisher import pick_video_url, set_youtube_video

log = logging.getLogger("admin")

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/check-data/{content_id}", response_model=CheckDataOut)
def check_data(content_id: int, db: Session = Depends(get_db)):
    """Diagnóstico: ¿esta lección tiene todo lo necesario para enviarse?"""
    bundle = get_content_bundle(db, content_id)
    if bundle is None:
        raise HTTPException(status_code=404, detail="Contenido no encontrado")

    asset = bundle.video_asset
    video_url = pick_video_url(asset)
    question_count = len(ordered_questions(bundle.quiz)) if bundle.quiz else 0
    return CheckDataOut(
        contentId=bundle.content.id,
        title=bundle.content.title,
        isActive=bool(bundle.content.is_active),
        videoAsset=VideoAssetOut(
            youtubeUrl=asset.youtube_url,
            youtubeVideoId=asset.youtube_video_id,
            youtubeStatus=asset.youtube_status,
            muxUrl=asset.mux_url,
            muxStatus=asset.mux_status,
        ) if asset else None,
        videoUrl=video_url,
        quizId=bundle.quiz.id if bundle.quiz else None,
        questionCount=question_count,
        readyToSend=bool(video_url) and question_count > 0,
    )


@router.post("/contents/{content_id}/video-url", response_model=VideoUrlOut)
def update_video_url(content_id: int, body: VideoUrlIn, db: Session = Depends(get_db)):
    bundle = get_content_bundle(db, content_id)
    if bundle is None:
        raise HTTPException(status_code=404, detail="Contenido no encontrado")

    asset = bundle.video_asset or VideoAsset(content_id=content_id)
    try:
        set_youtube_video(db, asset, url=body.youtubeUrl, video_id=body.youtubeVideoId)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    db.refresh(asset)
    log.info("content %s video -> %s", content_id, asset.youtube_url)
    return VideoUrlOut(youtubeUrl=asset.youtube_url, youtubeVideoId=asset.youtube_video_id)


@router.post("/contents/{content_id}/quiz/generate", response_model=GenerateQuizOut)
def generate_quiz(content_id: int, body: GenerateQuizIn | None = None, db: Session = Depends(get_db)):
    """Genera (o reemplaza) las preguntas del quiz de la lección con Gemini."""
    body = body or GenerateQuizIn()
    bundle = get_content_bundle(db, content_id)
    if bundle is None:
        raise HTTPException(status_code=404, detail="Contenido no encontrado")
    if not gemini.AI_ENABLED:
        raise HTTPException(status_code=503, detail="Generación con IA deshabilitada (falta GEMINI_API_KEY)")

    try:
        items = gemini.generate_quiz_questions(
            bundle.content.title, bundle.content.description or "", body.numberOfQuestions
        )
    except RuntimeError as e:
        log.warning("quiz generation for content %s failed: %s", content_id, e)
        raise HTTPException(status_code=502, detail="No se pudieron generar preguntas")
    if not items:
        raise HTTPException(status_code=502, detail="La IA no devolvió preguntas utilizables")

    quiz = bundle.quiz
    if quiz is not None:
        active = count_active_sessions(db, quiz.id)
        if active:
            # las respuestas guardadas apuntan a las preguntas actuales por posición
            raise HTTPException(status_code=409, detail=f"El quiz tiene {active} sesión(es) activa(s)")
    else:
        quiz = Quiz(content_id=content_id, title=f"Quiz: {bundle.content.title}",
                    description=bundle.content.description)
        db.add(quiz)
        db.flush()
    questions = replace_questions(db, quiz, items)
    db.commit()
    log.info("content %s quiz %s regenerated with %s questions", content_id, quiz.id, len(questions))
    return GenerateQuizOut(
        quizId=quiz.id,
        questionCount=len(questions),
        questions=[q.question_text for q in questions],
    )
