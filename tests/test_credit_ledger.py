from app.repositories.credit import INSUFFICIENT_CREDITS
from app.services.credit_services import CreditService


def test_deduct_returns_new_balance(session_factory, make_user, balance_of):
    make_user(credits=10)
    with session_factory() as db:
        assert CreditService(db).deduct(1, 3) == 7
    assert balance_of() == 7


def test_deduct_refuses_when_balance_too_low(session_factory, make_user, balance_of):
    make_user(credits=2)
    with session_factory() as db:
        assert CreditService(db).deduct(1, 3) == INSUFFICIENT_CREDITS
    assert balance_of() == 2


def test_deduct_exact_balance_reaches_zero(session_factory, make_user, balance_of):
    make_user(credits=3)
    with session_factory() as db:
        service = CreditService(db)
        assert service.deduct(1, 3) == 0
        assert service.deduct(1, 1) == INSUFFICIENT_CREDITS
    assert balance_of() == 0


def test_refund_restores_balance_and_ignores_non_positive(session_factory, make_user, balance_of):
    make_user(credits=5)
    with session_factory() as db:
        service = CreditService(db)
        service.deduct(1, 3)
        service.refund(1, 3)
        service.refund(1, 0)
        service.refund(1, -4)
        assert service.balance(1) == 5
    assert balance_of() == 5


def test_deduct_for_unknown_user_is_insufficient(session_factory):
    with session_factory() as db:
        assert CreditService(db).deduct(999, 1) == INSUFFICIENT_CREDITS
