from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel

class TransactionOut(BaseModel):
    id: int
    amount: int
    type: str
    description: str
    contentId: Optional[int] = None
    quizAttemptId: Optional[int] = None
    createdAt: Optional[datetime] = None

class WalletOut(BaseModel):
    phone: str
    name: str
    balance: int
    transactions: List[TransactionOut]

class ReconcileOut(BaseModel):
    phone: str
    previousBalance: int
    balance: int
