"""Errores de dominio del motor de quiz, el ledger y el despacho de lecciones."""


class QuizError(Exception): ...

# ---- no encontrado (se expone al caller, no se reintenta) ----
class NotFoundError(QuizError): ...
class QuizNotFoundError(NotFoundError): ...
class ContentNotFoundError(NotFoundError): ...
class VideoNotFoundError(NotFoundError): ...
class UserNotFoundError(NotFoundError): ...

class EmptyQuizError(QuizError): ...

# ---- entrada inválida (se recupera re-preguntando) ----
class InvalidInputError(QuizError): ...
class InvalidAnswerError(InvalidInputError): ...

# ---- sesión en estado inesperado (no-op) ----
class StateConflictError(QuizError): ...

# ---- notifier / video publisher ----
class DownstreamDeliveryError(QuizError): ...

# ---- ledger ----
class LedgerInvariantError(QuizError): ...
class InvalidAmountError(LedgerInvariantError): ...
class DuplicateCreditError(LedgerInvariantError): ...
