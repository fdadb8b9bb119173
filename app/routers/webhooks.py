import json, logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Form, HTTPException, Query
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session

from app.core import config
from app.deps import Services, get_db, get_services
from app.domain.errors import QuizError
from app.domain.flows.export import extract_flow_answers
from app.domain.inbound.router import GENERIC_ERROR_TEXT
from app.domain.quiz.catalog import get_quiz_with_questions
from app.domain.users.service import normalize_phone
from app.schemas.webhook import InboundMessageIn, InboundOut

log = logging.getLogger("webhooks")

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _route(db: Session, svc: Services, phone: str, text: str | None):
    """Pasa el mensaje al router de entrada. Nunca deja escapar un traceback al proveedor."""
    try:
        outcome = svc.inbound.route(db, phone, text)
    except Exception:
        log.exception("inbound from %s crashed", phone)
        db.rollback()
        svc.notifier.send(phone, GENERIC_ERROR_TEXT)
        return JSONResponse(status_code=500, content={"ok": False, "error": "No se pudo procesar el mensaje"})
    return InboundOut(action=outcome.action, completed=outcome.completed)


@router.post("/inbound", response_model=InboundOut)
def inbound(body: InboundMessageIn, db: Session = Depends(get_db), svc: Services = Depends(get_services)):
    phone = normalize_phone(body.from_)
    if not phone:
        raise HTTPException(status_code=400, detail="Número de origen inválido")
    log.info("inbound %s: %r", phone, body.text)
    return _route(db, svc, phone, body.text)


# ------------------ Twilio ------------------
@router.get("/twilio")
def twilio_ping():
    return {"status": "ok", "message": "Twilio webhook endpoint is active"}


@router.post("/twilio", response_model=InboundOut)
def twilio_inbound(
    From: str = Form(...),
    body: str = Form("", alias="Body"),
    MessageSid: str | None = Form(None),
    db: Session = Depends(get_db),
    svc: Services = Depends(get_services),
):
    phone = normalize_phone(From)
    if not phone or not body.strip():
        raise HTTPException(status_code=400, detail="Missing from or body")
    log.info("twilio %s (%s): %r", phone, MessageSid, body)
    return _route(db, svc, phone, body)


# ------------------ Meta (Cloud API) ------------------
@router.get("/whatsapp")
def whatsapp_verify(
    mode: str | None = Query(None, alias="hub.mode"),
    token: str | None = Query(None, alias="hub.verify_token"),
    challenge: str | None = Query(None, alias="hub.challenge"),
):
    if mode == "subscribe" and config.WHATSAPP_VERIFY_TOKEN and token == config.WHATSAPP_VERIFY_TOKEN:
        log.info("whatsapp webhook verified")
        return PlainTextResponse(challenge or "")
    raise HTTPException(status_code=403, detail="Verificación fallida")


def _handle_flow_reply(db: Session, svc: Services, phone: str, interactive: Dict[str, Any]) -> None:
    """nfm_reply: el usuario terminó el quiz en pantallas. flow_token trae quiz_id/content_id."""
    nfm = interactive.get("nfm_reply") or interactive
    try:
        response = json.loads(nfm.get("response_json") or interactive.get("response_json") or "{}")
        # Cloud API manda el flow_token dentro de response_json
        raw_token = nfm.get("flow_token") or interactive.get("flow_token") or response.get("flow_token") or "{}"
        token = json.loads(raw_token) if isinstance(raw_token, str) else raw_token
        quiz_id = int(token["quiz_id"])
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        log.error("bad nfm_reply from %s: %s", phone, e)
        return

    quiz = get_quiz_with_questions(db, quiz_id)
    if quiz is None:
        log.error("nfm_reply from %s for unknown quiz %s", phone, quiz_id)
        return
    try:
        answers = extract_flow_answers(response, quiz)
        summary = svc.engine.submit_flow_response(db, phone, quiz_id, answers)
    except QuizError as e:
        db.rollback()
        log.error("flow completion for %s quiz %s failed: %s", phone, quiz_id, e)
        svc.notifier.send(phone, GENERIC_ERROR_TEXT)
        return
    log.info("flow completion %s quiz %s -> attempt %s", phone, quiz_id, summary.attempt_id)


@router.post("/whatsapp")
def whatsapp_inbound(payload: Any = Body(...), db: Session = Depends(get_db), svc: Services = Depends(get_services)):
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="JSON inválido")

    handled = 0
    try:
        for entry in payload.get("entry") or []:
            for change in entry.get("changes") or []:
                value = change.get("value") or {}
                for message in value.get("messages") or []:
                    phone = normalize_phone(message.get("from"))
                    if not phone:
                        continue
                    mtype = message.get("type")
                    interactive = message.get("interactive") or {}
                    if mtype == "interactive" and interactive.get("type") == "nfm_reply":
                        _handle_flow_reply(db, svc, phone, interactive)
                    elif mtype == "text":
                        svc.inbound.route(db, phone, (message.get("text") or {}).get("body"))
                    else:
                        log.info("ignoring %s message from %s", mtype, phone)
                        continue
                    handled += 1
    except Exception:
        log.exception("whatsapp webhook crashed")
        db.rollback()
        return JSONResponse(status_code=500, content={"ok": False, "error": "Internal server error"})

    return {"ok": True, "handled": handled}
