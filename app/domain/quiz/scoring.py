from dataclasses import dataclass
from typing import Mapping, Sequence

# respuesta ausente: nunca coincide con un índice válido
NO_ANSWER = -1


@dataclass(frozen=True)
class QuizScore:
    correct: int
    total: int
    score: int      # 0..100
    passed: bool


def percent(correct: int, total: int) -> int:
    """round(100 * correct / total) redondeando .5 hacia arriba, en aritmética entera."""
    if total <= 0:
        return 0
    return (200 * correct + total) // (2 * total)


def score_answers(correct_indices: Sequence[int], answers: Mapping[int, int], passing_score: int) -> QuizScore:
    """Recalcula desde el mapa completo (tolera respuestas re-escritas por reintentos)."""
    correct = sum(
        1 for i, expected in enumerate(correct_indices)
        if answers.get(i, NO_ANSWER) == expected
    )
    total = len(correct_indices)
    score = percent(correct, total)
    return QuizScore(correct=correct, total=total, score=score, passed=score >= int(passing_score))
