"""Tests for the indexability oracles."""

from types import SimpleNamespace

import pytest

from indexsync.platform.indexable import AlwaysIndexable, CallbackIndexable, Indexable
from indexsync.platform.sync.exceptions import SyncConfigurationError


class _Post:
    def __init__(self, visible):
        self.visible = visible

    def is_visible(self):
        return self.visible


def test_oracles_satisfy_protocol():
    assert isinstance(AlwaysIndexable(), Indexable)
    assert isinstance(CallbackIndexable(), Indexable)


def test_without_callback_everything_is_indexable():
    indexable = CallbackIndexable({"other/type": "is_visible"})

    assert indexable.is_object_indexable("posts", "post", _Post(False))


def test_method_name_callback():
    indexable = CallbackIndexable({"posts/post": "is_visible"})

    assert indexable.is_object_indexable("posts", "post", _Post(True))
    assert not indexable.is_object_indexable("posts", "post", _Post(False))


def test_attribute_name_callback():
    indexable = CallbackIndexable({"posts/post": "visible"})

    assert not indexable.is_object_indexable("posts", "post", _Post(0))


def test_callable_callback():
    indexable = CallbackIndexable({"posts/post": lambda post: post.visible == "yes"})

    assert indexable.is_object_indexable("posts", "post", SimpleNamespace(visible="yes"))
    assert not indexable.is_object_indexable("posts", "post", SimpleNamespace(visible="no"))


def test_missing_attribute_raises():
    indexable = CallbackIndexable({"posts/post": "is_archived"})

    with pytest.raises(SyncConfigurationError, match="is_archived"):
        indexable.is_object_indexable("posts", "post", _Post(True))


@pytest.mark.parametrize("callback", ["", 42, None])
def test_invalid_callback_is_rejected(callback):
    with pytest.raises(SyncConfigurationError):
        CallbackIndexable({"posts/post": callback})


def test_register_replaces_callback():
    indexable = CallbackIndexable({"posts/post": lambda post: False})

    indexable.register("posts/post", lambda post: True)

    assert indexable.is_object_indexable("posts", "post", _Post(False))
