import logging
from typing import List

from sqlalchemy import select, update, func
from sqlalchemy.orm import Session

from app.domain.errors import InvalidAmountError, DuplicateCreditError, UserNotFoundError
from app.models.user import User
from app.models.wallet_transaction import WalletTransaction, QUIZ_REWARD

log = logging.getLogger("ledger")


def credit(
    db: Session,
    user_id: int,
    amount: int,
    attempt_id: int | None,
    description: str,
    *,
    tx_type: str = QUIZ_REWARD,
    content_id: int | None = None,
    commit: bool = True,
) -> WalletTransaction:
    """
    Suma `amount` al saldo y agrega el movimiento, ambos en la MISMA transacción.
    commit=False deja que el caller (p.ej. la finalización del quiz) haga un único commit.
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(f"amount must be a positive integer, got {amount!r}")

    if attempt_id is not None:
        already = db.execute(
            select(WalletTransaction.id).where(WalletTransaction.quiz_attempt_id == attempt_id)
        ).scalar_one_or_none()
        if already:
            raise DuplicateCreditError(f"attempt {attempt_id} already credited (tx {already})")

    res = db.execute(
        update(User)
        .where(User.id == user_id)
        .values(l_coins=User.l_coins + amount)
        .execution_options(synchronize_session="fetch")
    )
    if res.rowcount == 0:
        raise UserNotFoundError(f"user {user_id} not found")

    tx = WalletTransaction(
        user_id=user_id,
        amount=amount,
        type=tx_type,
        description=description,
        content_id=content_id,
        quiz_attempt_id=attempt_id,
    )
    db.add(tx)
    db.flush()

    if commit:
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(tx)

    log.info("credited %s to user %s (attempt=%s, tx=%s)", amount, user_id, attempt_id, tx.id)
    return tx


def ledger_balance(db: Session, user_id: int) -> int:
    """Saldo derivado del ledger (fuente de verdad)."""
    return int(db.execute(
        select(func.coalesce(func.sum(WalletTransaction.amount), 0)).where(WalletTransaction.user_id == user_id)
    ).scalar_one() or 0)


def list_transactions(db: Session, user_id: int, limit: int = 50) -> List[WalletTransaction]:
    return db.execute(
        select(WalletTransaction)
        .where(WalletTransaction.user_id == user_id)
        .order_by(WalletTransaction.id.desc())
        .limit(limit)
    ).scalars().all()


def reconcile_balance(db: Session, user_id: int) -> int:
    """Reescribe el saldo materializado con la suma del ledger. Devuelve el saldo final."""
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(f"user {user_id} not found")
    total = ledger_balance(db, user_id)
    if int(user.l_coins or 0) != total:
        log.warning("user %s balance drift: stored=%s ledger=%s", user_id, user.l_coins, total)
        user.l_coins = total
        db.add(user)
        db.commit()
    return total
