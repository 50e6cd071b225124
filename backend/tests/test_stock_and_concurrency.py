"""
Stock mutation and retry helper tests.
"""

import pytest
from sqlalchemy.exc import OperationalError

from storefront.extensions import db
from storefront.services import concurrency
from storefront.services.stock_service import InsufficientStockError, return_stock, take_stock


class TestConditionalDecrement:

    def test_take_within_stock(self, make_product):
        product = make_product(stock=3)
        take_stock(product.id, 3)
        db.session.commit()
        db.session.refresh(product)
        assert product.stock == 0

    def test_take_beyond_stock_changes_nothing(self, make_product):
        product = make_product(stock=2)
        with pytest.raises(InsufficientStockError) as exc:
            take_stock(product.id, 3)
        db.session.rollback()

        assert exc.value.details == {"product_id": product.id, "available": 2, "requested": 3}
        db.session.refresh(product)
        assert product.stock == 2

    def test_return_stock(self, make_product):
        product = make_product(stock=0)
        return_stock(product.id, 4)
        db.session.commit()
        db.session.refresh(product)
        assert product.stock == 4


class TestRunWithRetry:

    def test_retries_operational_errors(self, db_session, monkeypatch):
        monkeypatch.setattr(concurrency.time, "sleep", lambda _s: None)
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise OperationalError("UPDATE products", {}, Exception("deadlock detected"))
            return "ok"

        assert concurrency.run_with_retry(flaky) == "ok"
        assert len(attempts) == 3

    def test_gives_up_after_attempts(self, db_session, monkeypatch):
        monkeypatch.setattr(concurrency.time, "sleep", lambda _s: None)

        def always_locked():
            raise OperationalError("SELECT", {}, Exception("lock timeout"))

        with pytest.raises(OperationalError):
            concurrency.run_with_retry(always_locked, attempts=2)

    def test_other_errors_are_not_retried(self, db_session):
        calls = []

        def broken():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            concurrency.run_with_retry(broken)
        assert calls == [1]
