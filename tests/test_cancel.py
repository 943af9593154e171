"""Tests for cancel tokens."""

import pytest

from regmaster.managers.registry.base import OperationCancelled, RegistryError
from regmaster.managers.registry.cancel import CancelToken


def test_parent_cancel_propagates_to_children():
    parent = CancelToken()
    child = parent.child()
    grandchild = child.child()

    parent.cancel()

    assert child.cancelled
    assert grandchild.cancelled


def test_child_cancel_does_not_affect_parent():
    parent = CancelToken()
    child = parent.child()

    child.cancel()

    assert child.cancelled
    assert not parent.cancelled


def test_detached_child_is_not_cancelled():
    parent = CancelToken()
    child = parent.child()
    child.detach()

    parent.cancel()

    assert not child.cancelled


def test_callbacks_run_once():
    token = CancelToken()
    calls = []
    token.add_callback(lambda: calls.append("a"))

    token.cancel()
    token.cancel()

    assert calls == ["a"]


def test_callback_added_after_cancel_runs_immediately():
    token = CancelToken()
    token.cancel()
    calls = []

    token.add_callback(lambda: calls.append(1))

    assert calls == [1]


def test_removed_callback_does_not_run():
    token = CancelToken()
    calls = []

    def callback():
        calls.append(1)

    token.add_callback(callback)
    token.remove_callback(callback)
    token.remove_callback(callback)
    token.cancel()

    assert calls == []


def test_raise_if_cancelled():
    token = CancelToken()
    token.raise_if_cancelled()

    token.cancel()
    with pytest.raises(OperationCancelled):
        token.raise_if_cancelled()


def test_cancellation_is_not_a_registry_error():
    assert not issubclass(OperationCancelled, RegistryError)
