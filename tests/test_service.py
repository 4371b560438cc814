import logging

import pytest

from userenricher.models import EnrichedUser, UserFilter, UserNotFoundError
from userenricher.service import Enricher, EnricherError


class FakeProvider:
    def __init__(self, error=None):
        self.error = error
        self.users = {}
        self.next_id = 1
        self.deleted = []
        self.filters = []

    def _check(self):
        if self.error is not None:
            raise self.error

    def save_user(self, user):
        self._check()
        user_id = self.next_id
        self.next_id += 1
        self.users[user_id] = user
        return user_id

    def edit_user(self, user):
        self._check()
        self.users[user.id] = user
        return user

    def delete_user(self, user_id):
        self._check()
        self.deleted.append(user_id)

    def get_users(self, user_filter):
        self._check()
        self.filters.append(user_filter)
        return list(self.users.values())

    def get_user(self, user_id):
        self._check()
        try:
            return self.users[user_id]
        except KeyError:
            raise UserNotFoundError() from None


def _service(provider):
    return Enricher(logging.getLogger("test.enricher"), provider)


def test_save_user_returns_provider_id():
    provider = FakeProvider()
    service = _service(provider)
    user = EnrichedUser(name="Anna")
    assert service.save_user(user) == 1
    assert provider.users[1] is user


def test_save_user_wraps_error():
    cause = RuntimeError("boom")
    service = _service(FakeProvider(error=cause))
    with pytest.raises(EnricherError, match="^enricher.SaveUser: boom$") as info:
        service.save_user(EnrichedUser(name="Anna"))
    assert info.value.__cause__ is cause


def test_edit_user_returns_result():
    service = _service(FakeProvider())
    user = EnrichedUser(id=4, name="Oleg")
    assert service.edit_user(user) == user


def test_edit_user_wraps_error():
    service = _service(FakeProvider(error=RuntimeError("boom")))
    with pytest.raises(EnricherError, match="^enricher.EditUser: boom$"):
        service.edit_user(EnrichedUser(id=4))


def test_delete_user_forwards_id():
    provider = FakeProvider()
    _service(provider).delete_user(9)
    assert provider.deleted == [9]


def test_delete_user_wraps_error():
    service = _service(FakeProvider(error=RuntimeError("boom")))
    with pytest.raises(EnricherError, match="^enricher.DeleteUser: boom$"):
        service.delete_user(9)


def test_get_users_passes_filter():
    provider = FakeProvider()
    service = _service(provider)
    service.save_user(EnrichedUser(name="Anna"))
    user_filter = UserFilter(name="An")
    result = service.get_users(user_filter)
    assert [u.name for u in result] == ["Anna"]
    assert provider.filters == [user_filter]


def test_get_users_not_found_is_reraised():
    service = _service(FakeProvider(error=UserNotFoundError("anything")))
    with pytest.raises(UserNotFoundError, match="^user not found$"):
        service.get_users(UserFilter())


def test_get_user_found():
    service = _service(FakeProvider())
    user_id = service.save_user(EnrichedUser(name="Anna"))
    assert service.get_user(user_id).name == "Anna"


def test_get_user_not_found():
    service = _service(FakeProvider())
    with pytest.raises(UserNotFoundError, match="^user not found$"):
        service.get_user(42)


def test_get_user_wraps_other_errors():
    service = _service(FakeProvider(error=RuntimeError("boom")))
    with pytest.raises(EnricherError, match="^enricher.GetUser: boom$"):
        service.get_user(1)


def test_logs_attempt_with_operation(caplog):
    service = _service(FakeProvider())
    with caplog.at_level(logging.INFO, logger="test.enricher"):
        service.save_user(EnrichedUser(name="Anna"))
    records = [r for r in caplog.records if r.getMessage() == "attempting to save user"]
    assert len(records) == 1
    assert records[0].op == "enricher.SaveUser"


def test_logs_failure(caplog):
    service = _service(FakeProvider(error=RuntimeError("boom")))
    with caplog.at_level(logging.INFO, logger="test.enricher"):
        with pytest.raises(EnricherError):
            service.delete_user(1)
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert [r.getMessage() for r in errors] == ["failed to delete user: boom"]


def test_default_logger_when_none():
    service = Enricher(None, FakeProvider())
    assert service.save_user(EnrichedUser(name="Anna")) == 1