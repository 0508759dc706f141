"""Tests for PresenceRegistry."""

import pytest

from chat.presence import PresenceRegistry


@pytest.fixture
def registry():
    return PresenceRegistry()


class TestPresenceRegistry:
    def test_first_handle_comes_online(self, registry):
        assert registry.connect(1, "tab-a") is True
        assert registry.is_online(1)

    def test_second_handle_is_not_a_transition(self, registry):
        registry.connect(1, "tab-a")

        assert registry.connect(1, "tab-b") is False
        assert registry.handles_for(1) == {"tab-a", "tab-b"}

    def test_closing_one_of_two_handles_keeps_user_online(self, registry):
        registry.connect(1, "tab-a")
        registry.connect(1, "tab-b")

        assert registry.disconnect(1, "tab-a") is False
        assert registry.is_online(1)
        assert registry.handles_for(1) == {"tab-b"}

    def test_last_handle_goes_offline(self, registry):
        registry.connect(1, "tab-a")

        assert registry.disconnect(1, "tab-a") is True
        assert not registry.is_online(1)
        assert registry.online_user_ids() == []

    def test_unknown_handle_is_ignored(self, registry):
        registry.connect(1, "tab-a")

        assert registry.disconnect(1, "tab-z") is False
        assert registry.disconnect(2, "tab-a") is False
        assert registry.is_online(1)

    def test_online_user_ids_sorted(self, registry):
        registry.connect(7, "x")
        registry.connect(3, "y")

        assert registry.online_user_ids() == [3, 7]

    def test_handles_for_returns_a_copy(self, registry):
        registry.connect(1, "tab-a")

        registry.handles_for(1).add("intruder")

        assert registry.handles_for(1) == {"tab-a"}
