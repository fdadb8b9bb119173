import inspect
import json

import pytest
from sqlalchemy import select

from app.ai import gemini
from app.core import config
from app.domain.inbound.router import GENERIC_ERROR_TEXT
from app.domain.quiz.catalog import ordered_questions
from app.models.user import User
from app.routers import webhooks
from tests.conftest import PHONE


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


# ---------------- webhooks ----------------

def test_inbound_json_starts_and_answers(client, notifier, quiz):
    r = client.post("/webhooks/inbound", json={"from": "whatsapp:+52 1 555 0001", "text": "QUIZ"})
    assert r.status_code == 200
    assert r.json() == {"ok": True, "action": "start", "completed": False}
    assert notifier.sent[-1][0] == PHONE

    r = client.post("/webhooks/inbound", json={"from": PHONE, "text": "2"})
    assert r.json()["action"] == "answer"


def test_inbound_huge_number_reprompts(client, notifier, quiz):
    client.post("/webhooks/inbound", json={"from": PHONE, "text": "QUIZ"})
    r = client.post("/webhooks/inbound", json={"from": PHONE, "text": "2" * 4400})
    assert r.status_code == 200
    assert r.json() == {"ok": True, "action": "answer", "completed": False}
    assert notifier.last.startswith("❌ Por favor responde solo con el número")


def test_inbound_requires_from(client):
    assert client.post("/webhooks/inbound", json={"text": "hola"}).status_code == 422


def test_twilio_form_webhook(client, notifier, quiz):
    r = client.post("/webhooks/twilio", data={"From": f"whatsapp:{PHONE}", "Body": "quiz", "MessageSid": "SM1"})
    assert r.status_code == 200 and r.json()["action"] == "start"
    assert client.post("/webhooks/twilio", data={"From": f"whatsapp:{PHONE}", "Body": " "}).status_code == 400
    assert client.get("/webhooks/twilio").json()["status"] == "ok"


def test_inbound_crash_returns_json_error(client, services, notifier, monkeypatch):
    def boom(db, phone, text):
        raise RuntimeError("db down")
    monkeypatch.setattr(services.inbound, "route", boom)

    r = client.post("/webhooks/inbound", json={"from": PHONE, "text": "hola"})
    assert r.status_code == 500
    assert r.json()["ok"] is False
    assert notifier.last == GENERIC_ERROR_TEXT


def test_whatsapp_verification(client, monkeypatch):
    monkeypatch.setattr(config, "WHATSAPP_VERIFY_TOKEN", "secreto")
    params = {"hub.mode": "subscribe", "hub.verify_token": "secreto", "hub.challenge": "12345"}
    r = client.get("/webhooks/whatsapp", params=params)
    assert r.status_code == 200 and r.text == "12345"

    params["hub.verify_token"] = "otro"
    assert client.get("/webhooks/whatsapp", params=params).status_code == 403


def _meta_payload(message):
    return {"entry": [{"changes": [{"value": {"messages": [message]}}]}]}


def test_whatsapp_text_is_routed(client, notifier, quiz):
    msg = {"from": "5215550001", "type": "text", "text": {"body": "QUIZ"}}
    r = client.post("/webhooks/whatsapp", json=_meta_payload(msg))
    assert r.json() == {"ok": True, "handled": 1}
    assert "*Pregunta 1/5:*" in notifier.last


def test_whatsapp_webhook_runs_in_threadpool(client):
    # handler síncrono: FastAPI lo ejecuta fuera del event loop (locks y requests bloquean)
    assert not inspect.iscoroutinefunction(webhooks.whatsapp_inbound)
    assert client.post("/webhooks/whatsapp", json=[1, 2]).status_code == 400
    assert client.post("/webhooks/whatsapp", json={"entry": []}).json() == {"ok": True, "handled": 0}


def test_whatsapp_flow_completion_credits(client, notifier, quiz):
    qs = ordered_questions(quiz)
    response = {
        "flow_token": json.dumps({"quiz_id": quiz.id, "content_id": quiz.content_id}),
        "answers": {str(q.id): q.correct_answer for q in qs},
    }
    msg = {
        "from": "5215550001",
        "type": "interactive",
        "interactive": {"type": "nfm_reply", "nfm_reply": {"response_json": json.dumps(response)}},
    }
    assert client.post("/webhooks/whatsapp", json=_meta_payload(msg)).status_code == 200
    assert "Calificación: 100%" in notifier.last

    wallet = client.get("/wallet/5215550001").json()
    assert wallet["balance"] == 50
    assert len(wallet["transactions"]) == 1


# ---------------- lessons ----------------

def test_send_lesson_and_manage_schedule(client, demo):
    content, quiz = demo
    r = client.post("/lessons/send", json={"phone": PHONE, "contentId": content.id})
    assert r.status_code == 200
    body = r.json()
    assert body["videoUrl"].startswith("https://www.youtube.com/") and body["taskId"]

    tasks = client.get("/lessons/scheduled", params={"phone": PHONE}).json()
    assert [t["id"] for t in tasks] == [body["taskId"]]
    assert tasks[0]["status"] == "pending" and tasks[0]["quizId"] == quiz.id

    r = client.delete(f"/lessons/scheduled/{body['taskId']}")
    assert r.json()["status"] == "cancelled"
    assert client.delete(f"/lessons/scheduled/{body['taskId']}").status_code == 409
    assert client.delete("/lessons/scheduled/999").status_code == 404
    assert client.get("/lessons/scheduled", params={"status": "nope"}).status_code == 400


def test_send_lesson_errors(client, notifier, demo):
    assert client.post("/lessons/send", json={"phone": PHONE, "contentId": 999}).status_code == 404
    notifier.fail_next = 1
    r = client.post("/lessons/send", json={"phone": PHONE, "contentId": demo[0].id})
    assert r.status_code == 502


def test_run_due_starts_pending_quiz(client, services, notifier, demo):
    services.scheduler.delay_sec = 0
    client.post("/lessons/send", json={"phone": PHONE, "contentId": demo[0].id})
    r = client.post("/lessons/scheduled/run-due")
    assert len(r.json()["processed"]) == 1
    assert "*Pregunta 1/5:*" in notifier.last


# ---------------- quizzes / flows / wallet ----------------

def test_get_quiz_hides_answers(client, quiz):
    body = client.get(f"/quizzes/{quiz.id}").json()
    assert body["passingScore"] == 70 and body["rewardCoins"] == 50
    assert len(body["questions"]) == 5
    assert "correctAnswer" not in body["questions"][0]
    assert client.get("/quizzes/999").status_code == 404


def test_manual_start(client, notifier, quiz, make_quiz):
    r = client.post(f"/quizzes/{quiz.id}/start", json={"phone": PHONE})
    assert r.status_code == 200 and r.json()["sessionId"]
    assert "*Pregunta 1/5:*" in notifier.last

    empty = make_quiz([])
    assert client.post(f"/quizzes/{empty.id}/start", json={"phone": PHONE}).status_code == 400
    assert client.post("/quizzes/999/start", json={"phone": PHONE}).status_code == 404


def test_flow_export_endpoint(client, quiz):
    for method in (client.get, client.post):
        body = method(f"/flows/quiz/{quiz.id}").json()
        assert body["version"] == "6.0"
        assert len(body["screens"]) == 7
    assert client.get("/flows/quiz/999").status_code == 404


def test_wallet_unknown_user(client):
    assert client.get("/wallet/5210000000").status_code == 404


# ---------------- admin ----------------

def test_check_data(client, demo, make_quiz):
    body = client.get(f"/admin/check-data/{demo[0].id}").json()
    assert body["readyToSend"] is True
    assert body["questionCount"] == 5
    assert body["videoAsset"]["youtubeVideoId"] == "dQw4w9WgXcQ"

    no_video = make_quiz([(["a", "b"], 0)], video_url=None)
    assert client.get(f"/admin/check-data/{no_video.content_id}").json()["readyToSend"] is False
    assert client.get("/admin/check-data/999").status_code == 404


def test_update_video_url(client, demo, make_quiz):
    cid = demo[0].id
    r = client.post(f"/admin/contents/{cid}/video-url", json={"youtubeUrl": "https://youtu.be/NEWvid123"})
    assert r.json()["youtubeVideoId"] == "NEWvid123"

    no_video = make_quiz([(["a", "b"], 0)], video_url=None)
    r = client.post(f"/admin/contents/{no_video.content_id}/video-url", json={"youtubeVideoId": "abc"})
    assert r.json()["youtubeUrl"] == "https://www.youtube.com/watch?v=abc"

    assert client.post(f"/admin/contents/{cid}/video-url", json={}).status_code == 422


def test_generate_quiz_disabled(client, demo, monkeypatch):
    monkeypatch.setattr(gemini, "AI_ENABLED", False)
    assert client.post(f"/admin/contents/{demo[0].id}/quiz/generate").status_code == 503


def test_generate_quiz_replaces_questions(client, demo, monkeypatch):
    monkeypatch.setattr(gemini, "AI_ENABLED", True)
    monkeypatch.setattr(gemini, "generate_quiz_questions", lambda title, desc, n: [
        {"question": "¿Nueva?", "options": ["Sí", "No"], "correctAnswer": 0, "explanation": None},
    ] * n)

    r = client.post(f"/admin/contents/{demo[0].id}/quiz/generate", json={"numberOfQuestions": 3})
    assert r.status_code == 200
    assert r.json()["questionCount"] == 3
    quiz = client.get(f"/quizzes/{r.json()['quizId']}").json()
    assert [q["order"] for q in quiz["questions"]] == [0, 1, 2]


@pytest.mark.parametrize("raw,expected", [
    ([{"question": "q", "options": ["a", "b", "a"], "correctAnswer": 1}], 1),
    ([{"question": "q", "options": ["a"], "correctAnswer": 0}], 0),
    ([{"question": "", "options": ["a", "b"], "correctAnswer": 0}], 0),
    ([{"question": "q", "options": ["a", "b"], "correctAnswer": 5}], 0),
    ({"not": "a list"}, 0),
])
def test_sanitize_generated_questions(raw, expected):
    assert len(gemini.sanitize_questions(raw)) == expected


def test_generate_quiz_refused_while_session_active(client, demo, notifier, monkeypatch):
    monkeypatch.setattr(gemini, "AI_ENABLED", True)
    monkeypatch.setattr(gemini, "generate_quiz_questions", lambda title, desc, n: [
        {"question": "¿Nueva?", "options": ["Sí", "No"], "correctAnswer": 0, "explanation": None},
    ] * n)
    content, quiz = demo

    client.post("/webhooks/inbound", json={"from": PHONE, "text": "QUIZ"})
    for reply in ["2", "3"]:
        client.post("/webhooks/inbound", json={"from": PHONE, "text": reply})

    r = client.post(f"/admin/contents/{content.id}/quiz/generate", json={"numberOfQuestions": 1})
    assert r.status_code == 409
    assert len(client.get(f"/quizzes/{quiz.id}").json()["questions"]) == 5

    # la sesión sigue en la pregunta 3 con las preguntas originales
    r = client.post("/webhooks/inbound", json={"from": PHONE, "text": "3"})
    assert r.json()["completed"] is False
    assert "*Pregunta 4/5:*" in notifier.last


def test_wallet_reconcile(client, db, notifier, quiz):
    client.post("/webhooks/inbound", json={"from": PHONE, "text": "QUIZ"})
    for reply in ["2", "3", "3", "2", "2"]:
        client.post("/webhooks/inbound", json={"from": PHONE, "text": reply})

    user = db.execute(select(User).where(User.phone == PHONE)).scalar_one()
    user.l_coins = 7
    db.commit()

    r = client.post(f"/wallet/{PHONE}/reconcile")
    assert r.json() == {"phone": PHONE, "previousBalance": 7, "balance": 50}
    assert client.get(f"/wallet/{PHONE}").json()["balance"] == 50
    assert client.post("/wallet/5210000000/reconcile").status_code == 404
