from enum import Enum as PyEnum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Index
from sqlalchemy.sql import func
from app.db import Base

class TaskStatus(str, PyEnum):
    pending = "pending"
    running = "running"
    done = "done"
    cancelled = "cancelled"
    failed = "failed"

class ScheduledQuizStart(Base):
    __tablename__ = "scheduled_quiz_starts"

    id = Column(Integer, primary_key=True)
    user_phone = Column(String(32), index=True, nullable=False)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    content_id = Column(Integer, ForeignKey("contents.id", ondelete="CASCADE"), nullable=True)
    run_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(16), nullable=False, default=TaskStatus.pending.value)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    session_id = Column(Integer, ForeignKey("quiz_sessions.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_scheduled_quiz_starts_status_run_at", "status", "run_at"),
    )
