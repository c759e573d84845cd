"""
Local storage tests.
"""

import pytest

from memory.local_storage import TOKEN_KEY, USER_KEY, LocalStorage
from readgye.error_handling import StorageError


def test_set_get_and_replace(storage):
    assert storage.get_item(TOKEN_KEY) is None

    storage.set_item(TOKEN_KEY, "first")
    storage.set_item(TOKEN_KEY, "second")

    assert storage.get_item(TOKEN_KEY) == "second"


def test_remove_item(storage):
    storage.set_item(USER_KEY, "{}")

    assert storage.remove_item(USER_KEY) is True
    assert storage.remove_item(USER_KEY) is False
    assert storage.get_item(USER_KEY) is None


def test_clear_removes_every_key(storage):
    storage.set_item(USER_KEY, "{}")
    storage.set_item(TOKEN_KEY, "token")

    assert storage.clear() == 2
    assert storage.get_item(USER_KEY) is None
    assert storage.get_item(TOKEN_KEY) is None
    assert storage.clear() == 0


def test_values_survive_a_new_instance(tmp_path):
    path = str(tmp_path / "nested" / "client.db")
    LocalStorage(path).set_item(TOKEN_KEY, "persisted")

    assert LocalStorage(path).get_item(TOKEN_KEY) == "persisted"


def test_unusable_database_raises_storage_error(tmp_path):
    with pytest.raises(StorageError):
        LocalStorage(str(tmp_path))
