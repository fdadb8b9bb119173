from enum import Enum as PyEnum
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, CheckConstraint,
)
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func
from app.db import Base

class AnswerEncoding(str, PyEnum):
    numeric = "numeric"   # 1..N (canónico)
    letter = "letter"     # A, B, ... (demo de dos opciones)

class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True)
    content_id = Column(Integer, ForeignKey("contents.id", ondelete="CASCADE"), unique=True, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    passing_score = Column(Integer, nullable=False, default=70)     # 0..100
    reward_coins = Column(Integer, nullable=False, default=50)
    is_active = Column(Boolean, nullable=False, default=True)
    answer_encoding = Column(String(10), nullable=False, default=AnswerEncoding.numeric.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    content = relationship("Content", back_populates="quiz")
    # orden canónico de navegación: order ASC, id como desempate
    questions = relationship(
        "Question",
        back_populates="quiz",
        order_by="[Question.order, Question.id]",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("passing_score >= 0 AND passing_score <= 100", name="passing_score_range"),
        CheckConstraint("reward_coins >= 0", name="reward_non_negative"),
    )

class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), index=True, nullable=False)
    question_text = Column(Text, nullable=False)
    question_type = Column(String(32), nullable=False, default="MULTIPLE_CHOICE")
    options = Column(JSON, nullable=False, default=list)             # ["...", "...", ...]
    correct_answer = Column(Integer, nullable=False)                 # índice 0-based en options
    order = Column(Integer, nullable=False, default=0)
    explanation = Column(Text, nullable=True)

    quiz = relationship("Quiz", back_populates="questions")

    __table_args__ = (
        CheckConstraint("correct_answer >= 0", name="correct_answer_non_negative"),
    )

    @validates("options")
    def _check_options(self, key, value):
        opts = [str(o) for o in (value or [])]
        if len(opts) < 2:
            raise ValueError("a question needs at least 2 options")
        if self.correct_answer is not None and self.correct_answer >= len(opts):
            raise ValueError("correct_answer out of range for options")
        return opts

    @validates("correct_answer")
    def _check_correct(self, key, value):
        value = int(value)
        if value < 0 or (self.options and value >= len(self.options)):
            raise ValueError("correct_answer out of range for options")
        return value
