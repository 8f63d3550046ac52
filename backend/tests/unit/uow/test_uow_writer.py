"""
Unit tests for SQLAlchemyUnitOfWork (writer), using factories.
"""

from __future__ import annotations

import pytest

from authcore.models import User
from authcore.uow import SQLAlchemyUnitOfWork
from tests.factories.user import UserFactory
from tests.helpers.utils import EPOCH


class TestSQLAlchemyUnitOfWorkWriter:
    def test_writer_uow_commits_on_success(self, app, db, session):
        """
        GIVEN a writer UoW
        WHEN we add a user via the repo and leave without exception
        THEN the transaction is committed and the row is visible afterwards.
        """
        initial = db.session.query(User).count()

        with SQLAlchemyUnitOfWork() as uow:
            uow.users.add(UserFactory.build())

        assert db.session.query(User).count() == initial + 1

    def test_writer_uow_rolls_back_on_exception(self, app, db, session):
        """
        GIVEN a writer UoW
        WHEN an exception is raised inside the context
        THEN the transaction is rolled back and no rows are persisted.
        """
        initial = db.session.query(User).count()

        with pytest.raises(RuntimeError), SQLAlchemyUnitOfWork() as uow:
            uow.users.add(UserFactory.build())
            raise RuntimeError("boom")

        assert db.session.query(User).count() == initial

    def test_refresh_token_update_is_committed(self, app, db, session):
        user = UserFactory()
        session.commit()

        with SQLAlchemyUnitOfWork() as uow:
            assert uow.users.clear_refresh_token(user.id) is False
            assert uow.users.set_refresh_token(user.id, "f" * 64, EPOCH)

        with SQLAlchemyUnitOfWork() as uow:
            assert uow.users.get_refresh_state(user.id).digest == "f" * 64
