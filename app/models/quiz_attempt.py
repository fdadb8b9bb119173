from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.db import Base
from app.db.types import AnswerMapType

class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), index=True, nullable=False)
    # exactamente un intento por sesión completada
    session_id = Column(Integer, ForeignKey("quiz_sessions.id", ondelete="SET NULL"), unique=True, nullable=True)
    score = Column(Integer, nullable=False)             # 0..100
    passed = Column(Boolean, nullable=False)
    correct_count = Column(Integer, nullable=False, default=0)
    total_questions = Column(Integer, nullable=False, default=0)
    answers = Column(AnswerMapType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
