import logging
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.user import User

log = logging.getLogger("users")

def normalize_phone(raw: str | None) -> str:
    """'whatsapp:+52 1 477...' -> '+521477...'. El sobre del transporte no llega al motor."""
    p = (raw or "").strip()
    if p.lower().startswith("whatsapp:"):
        p = p[len("whatsapp:"):]
    p = "".join(ch for ch in p if ch.isdigit() or ch == "+")
    if p and not p.startswith("+"):
        p = f"+{p}"
    return p

def get_user_by_phone(db: Session, phone: str) -> User | None:
    return db.execute(select(User).where(User.phone == phone)).scalar_one_or_none()

def upsert_user(db: Session, phone: str, name: str | None = None, email: str | None = None) -> User:
    """Crea el usuario al primer contacto; si ya existe no toca nada."""
    user = get_user_by_phone(db, phone)
    if user:
        return user
    user = User(phone=phone, name=name or phone, email=email, l_coins=0)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # otro request lo creó al mismo tiempo
        db.rollback()
        user = get_user_by_phone(db, phone)
        if user is None:
            raise
        return user
    db.refresh(user)
    log.info("created user %s (%s)", user.id, phone)
    return user
