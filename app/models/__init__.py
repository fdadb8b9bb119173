# Importa todos los modelos para que Base.metadata los conozca (create_all / Alembic)
from app.models.user import User
from app.models.content import Content
from app.models.video_asset import VideoAsset, AssetStatus
from app.models.quiz import Quiz, Question, AnswerEncoding
from app.models.quiz_session import QuizSession, SessionStatus
from app.models.quiz_attempt import QuizAttempt
from app.models.wallet_transaction import WalletTransaction, QUIZ_REWARD
from app.models.scheduled_quiz_start import ScheduledQuizStart, TaskStatus

__all__ = [
    "User", "Content", "VideoAsset", "AssetStatus", "Quiz", "Question", "AnswerEncoding",
    "QuizSession", "SessionStatus", "QuizAttempt", "WalletTransaction", "QUIZ_REWARD",
    "ScheduledQuizStart", "TaskStatus",
]
