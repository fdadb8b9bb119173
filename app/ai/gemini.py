# app/ai/gemini.py
import json, logging
from typing import Any, Dict, List

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from app.core.config import GEMINI_API_KEY, MODEL_NAME

log = logging.getLogger("gemini")

# ------------------ Config ------------------
AI_ENABLED = bool(GEMINI_API_KEY) and bool(MODEL_NAME)
BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

SYSTEM_INSTRUCTION = (
    "Eres un asistente experto en crear contenido educativo corporativo. "
    "Siempre respondes en formato JSON válido."
)

def ensure_ai_ready():
    if not GEMINI_API_KEY:
        raise RuntimeError("GEMINI_API_KEY no está definido (AI_DISABLED).")
    if not MODEL_NAME:
        raise RuntimeError("MODEL_NAME no está definido (AI_DISABLED).")

# Session con reintentos (para 429/5xx)
_session = requests.Session()
_session.mount(
    "https://",
    HTTPAdapter(
        max_retries=Retry(
            total=3,
            backoff_factor=1.2,
            status_forcelist=(408, 409, 429, 500, 502, 503, 504),
            allowed_methods=frozenset(["POST"]),
            raise_on_status=False,
        )
    ),
)

def _post_genai(model: str, payload: dict, timeout: int = 60) -> dict:
    """model es el id (p.ej. 'gemini-2.5-flash'), NO una URL."""
    url = f"{BASE_URL}/{model}:generateContent"
    resp = _session.post(url, params={"key": GEMINI_API_KEY}, json=payload, timeout=timeout)
    if resp.status_code != 200:
        raise RuntimeError(f"[gemini] non-200: {resp.status_code} body={resp.text[:400]}")
    return resp.json()

def _extract_text(data: dict) -> str:
    try:
        cand = (data.get("candidates") or [])[0]
        parts = (cand.get("content") or {}).get("parts") or []
        # Concatena todos los .text por si vinieran fragmentados
        return "".join([p.get("text", "") for p in parts if isinstance(p, dict)]).strip()
    except (IndexError, AttributeError):
        return ""

def _parse_json_text(text: str) -> Any:
    """Limpia cercas ``` y prefijos 'json'; si falla, recorta al primer/último bloque JSON."""
    t = text.strip()
    if t.startswith("```"):
        t = t.strip("`").strip()
        if t.lower().startswith("json"):
            t = t[4:].strip()

    try:
        return json.loads(t)
    except ValueError:
        pass

    first = min([i for i in [t.find("{"), t.find("[")] if i != -1], default=-1)
    last = max(t.rfind("}"), t.rfind("]"))
    if first != -1 and last > first:
        try:
            return json.loads(t[first:last + 1])
        except ValueError:
            pass
    raise RuntimeError(f"No se pudo parsear JSON de Gemini. Texto recibido (recortado): {t[:400]}")

def _call_gemini_json(prompt_text: str, temperature: float = 0.8, max_tokens: int = 2000,
                      timeout: int = 60) -> Any:
    ensure_ai_ready()
    payload = {
        "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
        "generationConfig": {"temperature": temperature, "topK": 40, "topP": 0.95, "maxOutputTokens": max_tokens},
        "contents": [{"role": "user", "parts": [{"text": prompt_text}]}],
    }
    text = _extract_text(_post_genai(MODEL_NAME, payload, timeout=timeout))
    if not text:
        raise RuntimeError("Gemini devolvió texto vacío o sin partes .text")
    return _parse_json_text(text)

# ------------------ Saneo ------------------
def sanitize_questions(raw: Any, n_options: int = 4) -> List[Dict[str, Any]]:
    """
    Deja solo preguntas utilizables: texto, >=2 opciones únicas, correctAnswer dentro de rango.
    Formato de salida: {"question", "options", "correctAnswer", "explanation"}.
    """
    out: List[Dict[str, Any]] = []
    for it in (raw if isinstance(raw, list) else []):
        if not isinstance(it, dict):
            continue
        q = str(it.get("question") or "").strip()
        opts: List[str] = []
        for o in it.get("options") or []:
            s = str(o).strip()
            if s and s not in opts:
                opts.append(s)
        opts = opts[:n_options]
        try:
            correct = int(it.get("correctAnswer"))
        except (TypeError, ValueError):
            continue
        if not q or len(opts) < 2 or not 0 <= correct < len(opts):
            continue
        out.append({
            "question": q,
            "options": opts,
            "correctAnswer": correct,
            "explanation": str(it.get("explanation") or "").strip() or None,
        })
    return out

# ------------------ Generadores ------------------
def generate_quiz_questions(video_title: str, video_description: str, number_of_questions: int = 5) -> List[Dict[str, Any]]:
    prompt = f"""Eres un experto en educación corporativa. Genera {number_of_questions} preguntas de opción múltiple (4 opciones cada una) basadas en el siguiente contenido de video:

Título: {video_title}
Descripción: {video_description}

Requisitos:
- Las preguntas deben evaluar comprensión del contenido
- Cada pregunta debe tener exactamente 4 opciones
- Solo una opción debe ser correcta
- Las preguntas deben ser claras y directas
- El nivel de dificultad debe ser medio

Formato de respuesta (JSON array):
[
  {{
    "question": "Texto de la pregunta",
    "options": ["Opción A", "Opción B", "Opción C", "Opción D"],
    "correctAnswer": 0,
    "explanation": "Breve explicación de por qué esta es la respuesta correcta"
  }}
]

Responde SOLO con el JSON, sin texto adicional."""
    data = _call_gemini_json(prompt, temperature=0.8, max_tokens=2000)
    questions = sanitize_questions(data)
    log.info("gemini generated %s/%s usable questions for %r", len(questions), number_of_questions, video_title)
    return questions[:number_of_questions]
