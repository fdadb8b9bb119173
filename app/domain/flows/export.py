from typing import Any, Dict, List, Mapping

from app.domain.errors import InvalidAnswerError
from app.domain.quiz.catalog import ordered_questions
from app.models.quiz import Quiz

FLOW_VERSION = "6.0"
INTRO_SCREEN = "QUIZ_INTRO"
SUBMIT_SCREEN = "SUBMIT"


def question_screen_id(index: int) -> str:
    return f"QUESTION_{index + 1}"


def build_flow_definition(quiz: Quiz) -> Dict[str, Any]:
    """
    Quiz -> pantallas declarativas: intro, una por pregunta, cierre.
    El value de cada radio es el índice 0-based de la opción (mismo que guarda el motor).
    """
    questions = ordered_questions(quiz)
    screens: List[Dict[str, Any]] = [{
        "id": INTRO_SCREEN,
        "title": quiz.title,
        "data": {
            "quiz_description": quiz.description or "Completa el quiz para ganar puntos",
            "total_questions": len(questions),
            "passing_score": quiz.passing_score,
            "reward_coins": quiz.reward_coins,
        },
        "actions": [{
            "id": "start_quiz",
            "type": "complete",
            "payload": {"screen": question_screen_id(0) if questions else SUBMIT_SCREEN},
        }],
    }]

    for i, q in enumerate(questions):
        next_id = question_screen_id(i + 1) if i < len(questions) - 1 else SUBMIT_SCREEN
        screens.append({
            "id": question_screen_id(i),
            "title": q.question_text,
            "data": {
                "question_id": q.id,
                "question_type": q.question_type,
                "options": list(q.options),
            },
            "components": [{
                "type": "RadioButtonsGroup",
                "name": "answer",
                "options": [
                    {"id": f"option_{j}", "title": opt, "type": "radio", "value": str(j)}
                    for j, opt in enumerate(q.options)
                ],
            }],
            "actions": [{
                "id": "next",
                "type": "complete",
                "payload": {"screen": next_id, "answer": "{{answer}}", "question_id": q.id},
            }],
        })

    screens.append({
        "id": SUBMIT_SCREEN,
        "title": "¡Quiz completado!",
        "data": {"message": "Gracias por completar el quiz. Tus respuestas están siendo evaluadas."},
        "actions": [{"id": "submit", "type": "complete", "payload": {"action": "submit_quiz"}}],
    })

    return {"version": FLOW_VERSION, "screens": screens, "data": {}}


def extract_flow_answers(flow_response: Mapping[str, Any], quiz: Quiz) -> Dict[int, int]:
    """
    Respuesta del flujo -> {índice_pregunta: índice_opción}.
    Acepta {"screens": [{"id": "QUESTION_n", "data": {"answer": "k"}}]}
    o {"answers": {question_id: k}}.
    """
    questions = ordered_questions(quiz)
    by_id = {q.id: i for i, q in enumerate(questions)}
    out: Dict[int, int] = {}
    try:
        for screen in flow_response.get("screens") or []:
            sid = str(screen.get("id") or "")
            answer = (screen.get("data") or {}).get("answer")
            if not sid.startswith("QUESTION_") or answer is None:
                continue
            out[int(sid[len("QUESTION_"):]) - 1] = int(answer)
        if not out:
            for qid, answer in (flow_response.get("answers") or {}).items():
                idx = by_id.get(int(qid))
                if idx is not None:
                    out[idx] = int(answer)
    except (TypeError, ValueError) as e:
        raise InvalidAnswerError(f"malformed flow response: {e}")
    return out
