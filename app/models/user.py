from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from app.db import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    phone = Column(String(32), unique=True, index=True, nullable=False)   # E.164 sin prefijo "whatsapp:"
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)

    # saldo materializado; siempre == suma de wallet_transactions.amount
    l_coins = Column(Integer, nullable=False, default=0, server_default="0")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
