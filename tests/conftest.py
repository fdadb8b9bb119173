import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.db import Base, get_db
from app.deps import build_services
from app.domain.quiz.engine import QuizEngine
from app.models.content import Content
from app.models.quiz import Quiz, AnswerEncoding
from app.models.video_asset import VideoAsset, AssetStatus
from app.domain.quiz.catalog import replace_questions
from app.services.notifier import SendResult
from scripts.seed_demo import seed

PHONE = "+5215550001"


class FakeNotifier:
    """Registra los envíos; puede fallar los próximos N o los que cumplan un predicado."""

    def __init__(self):
        self.sent = []
        self.fail_next = 0
        self.fail_when = None

    def send(self, to, body, media_url=None):
        if self.fail_next > 0:
            self.fail_next -= 1
            return SendResult(False, error="boom")
        if self.fail_when is not None and self.fail_when(body):
            return SendResult(False, error="boom")
        self.sent.append((to, body, media_url))
        return SendResult(True, message_id=f"msg-{len(self.sent)}")

    def bodies(self, to=None):
        return [b for t, b, _ in self.sent if to is None or t == to]

    @property
    def last(self):
        return self.sent[-1][1] if self.sent else None


class FakeTimer:
    def __init__(self, delay, fn):
        self.delay = delay
        self.fn = fn
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.fn()


class TimerRecorder:
    def __init__(self):
        self.timers = []

    def __call__(self, delay, fn):
        t = FakeTimer(delay, fn)
        self.timers.append(t)
        return t


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def timers():
    return TimerRecorder()


@pytest.fixture
def engine(notifier):
    return QuizEngine(notifier)


@pytest.fixture
def services(notifier, session_factory, timers):
    svc = build_services(notifier=notifier, session_factory=session_factory, timer_factory=timers)
    yield svc
    svc.scheduler.shutdown()


@pytest.fixture
def demo(db):
    """Lección demo: contenido + video de YouTube + quiz de 5 preguntas (correctas 1,2,2,1,1)."""
    content, quiz = seed(db)
    return content, quiz


@pytest.fixture
def quiz(demo):
    return demo[1]


@pytest.fixture
def make_quiz(db):
    """Crea un contenido con quiz a medida. questions: lista de (opciones, correcta)."""
    def _make(questions, *, encoding=AnswerEncoding.numeric.value, passing_score=70, reward=50,
              video_url="https://www.youtube.com/watch?v=abc123XYZ", order_index=10):
        content = Content(title="Lección de prueba", description="desc", order_index=order_index, is_active=True)
        db.add(content)
        db.flush()
        if video_url:
            db.add(VideoAsset(content_id=content.id, youtube_url=video_url, youtube_status=AssetStatus.ready.value))
        q = Quiz(content_id=content.id, title="Quiz de prueba", passing_score=passing_score,
                 reward_coins=reward, answer_encoding=encoding)
        db.add(q)
        db.flush()
        replace_questions(db, q, [
            {"question": f"Pregunta {i}", "options": opts, "correctAnswer": correct}
            for i, (opts, correct) in enumerate(questions)
        ])
        db.commit()
        return q
    return _make


@pytest.fixture
def client(services, session_factory):
    from app.main import app

    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    app.state.services = services
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    app.state.services = None
