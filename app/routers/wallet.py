from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.deps import get_db
from app.domain.ledger.service import list_transactions, reconcile_balance
from app.domain.users.service import get_user_by_phone, normalize_phone
from app.schemas.wallet import WalletOut, TransactionOut, ReconcileOut

router = APIRouter(prefix="/wallet", tags=["wallet"])

@router.get("/{phone}", response_model=WalletOut)
def get_wallet(phone: str, limit: int = Query(50, ge=1, le=500), db: Session = Depends(get_db)):
    user = get_user_by_phone(db, normalize_phone(phone))
    if user is None:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")
    txs = list_transactions(db, user.id, limit=limit)
    return WalletOut(
        phone=user.phone,
        name=user.name,
        balance=int(user.l_coins or 0),
        transactions=[
            TransactionOut(
                id=t.id,
                amount=t.amount,
                type=t.type,
                description=t.description,
                contentId=t.content_id,
                quizAttemptId=t.quiz_attempt_id,
                createdAt=t.created_at,
            )
            for t in txs
        ],
    )

@router.post("/{phone}/reconcile", response_model=ReconcileOut)
def reconcile_wallet(phone: str, db: Session = Depends(get_db)):
    """Recalcula el saldo guardado a partir de la suma de movimientos."""
    user = get_user_by_phone(db, normalize_phone(phone))
    if user is None:
        raise HTTPException(status_code=404, detail="Usuario no encontrado")
    previous = int(user.l_coins or 0)
    balance = reconcile_balance(db, user.id)
    return ReconcileOut(phone=user.phone, previousBalance=previous, balance=balance)
