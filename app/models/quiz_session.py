from enum import Enum as PyEnum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db import Base
from app.db.types import AnswerMapType

class SessionStatus(str, PyEnum):
    active = "active"
    completed = "completed"

class QuizSession(Base):
    __tablename__ = "quiz_sessions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), index=True, nullable=False)
    current_index = Column(Integer, nullable=False, default=0)        # 0..n-1, nunca retrocede
    answers = Column(AnswerMapType, nullable=False, default=dict)     # {idx_pregunta: idx_opción}
    status = Column(String(16), nullable=False, default=SessionStatus.active.value)
    started_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User")
    quiz = relationship("Quiz")

    __table_args__ = (
        # a lo sumo UNA sesión activa por (usuario, quiz)
        Index(
            "uq_quiz_sessions_active_user_quiz",
            "user_id", "quiz_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )
