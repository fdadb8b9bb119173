import pytest
from sqlalchemy import select

from app.domain.errors import InvalidAmountError, DuplicateCreditError, UserNotFoundError
from app.domain.ledger.service import credit, ledger_balance, list_transactions, reconcile_balance
from app.domain.users.service import upsert_user
from app.models.quiz_attempt import QuizAttempt
from app.models.wallet_transaction import WalletTransaction
from tests.conftest import PHONE


@pytest.fixture
def user(db):
    return upsert_user(db, PHONE)


def _attempt(db, user, quiz):
    a = QuizAttempt(user_id=user.id, quiz_id=quiz.id, score=100, passed=True,
                    correct_count=5, total_questions=5, answers={})
    db.add(a)
    db.commit()
    return a


def test_credit_updates_balance_and_ledger(db, user, quiz):
    attempt = _attempt(db, user, quiz)
    tx = credit(db, user.id, 50, attempt.id, "Recompensa", content_id=quiz.content_id)

    db.refresh(user)
    assert user.l_coins == 50
    assert tx.amount == 50 and tx.quiz_attempt_id == attempt.id and tx.type == "quiz_reward"
    assert ledger_balance(db, user.id) == 50
    assert [t.id for t in list_transactions(db, user.id)] == [tx.id]


@pytest.mark.parametrize("amount", [0, -5, True, 2.5, "10"])
def test_credit_rejects_non_positive_or_non_int(db, user, amount):
    with pytest.raises(InvalidAmountError):
        credit(db, user.id, amount, None, "x")
    assert db.execute(select(WalletTransaction)).first() is None


def test_credit_once_per_attempt(db, user, quiz):
    attempt = _attempt(db, user, quiz)
    credit(db, user.id, 50, attempt.id, "Recompensa")
    with pytest.raises(DuplicateCreditError):
        credit(db, user.id, 50, attempt.id, "Recompensa")
    db.refresh(user)
    assert user.l_coins == 50


def test_credit_unknown_user(db):
    with pytest.raises(UserNotFoundError):
        credit(db, 12345, 10, None, "x")


def test_reconcile_rewrites_drifted_balance(db, user):
    credit(db, user.id, 30, None, "bono")
    user.l_coins = 999
    db.commit()

    assert reconcile_balance(db, user.id) == 30
    db.refresh(user)
    assert user.l_coins == 30
