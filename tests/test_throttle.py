"""Tests for the per (channel, ticket) notification cool-down."""

from unittest.mock import MagicMock

import pytest

from jira_slack_bot.store import NOTIFIED, MemoryStore, StoreError
from jira_slack_bot.throttle import DEFAULT_COOLDOWN_SECONDS, NotificationThrottle

T0 = 1_700_000_000.0


class RemarkAfterSnapshot(MemoryStore):
    """Re-marks C2:PBL-1 right after prune has read its snapshot."""

    def get_all(self, namespace):
        snapshot = super().get_all(namespace)
        self.set(NOTIFIED, "C2:PBL-1", repr(T0 + 100))
        return snapshot


@pytest.fixture()
def throttle():
    return NotificationThrottle(MemoryStore())


class TestShouldNotify:
    def test_first_check_is_true(self, throttle):
        assert throttle.should_notify("C1", "PBL-12345", T0) is True

    def test_check_has_no_side_effect(self, throttle):
        throttle.should_notify("C1", "PBL-12345", T0)
        assert throttle.should_notify("C1", "PBL-12345", T0) is True

    def test_false_within_cooldown(self, throttle):
        throttle.mark_notified("C1", "PBL-12345", T0)
        assert throttle.should_notify("C1", "PBL-12345", T0) is False
        assert throttle.should_notify("C1", "PBL-12345", T0 + DEFAULT_COOLDOWN_SECONDS - 1) is False

    def test_true_again_at_cooldown_boundary(self, throttle):
        throttle.mark_notified("C1", "PBL-12345", T0)
        assert throttle.should_notify("C1", "PBL-12345", T0 + DEFAULT_COOLDOWN_SECONDS) is True

    def test_default_cooldown_is_thirty_minutes(self):
        assert DEFAULT_COOLDOWN_SECONDS == 30 * 60

    def test_custom_cooldown(self):
        throttle = NotificationThrottle(MemoryStore(), cooldown_seconds=60)
        throttle.mark_notified("C1", "PBL-1", T0)
        assert throttle.should_notify("C1", "PBL-1", T0 + 59) is False
        assert throttle.should_notify("C1", "PBL-1", T0 + 60) is True


class TestKeyIndependence:
    def test_other_channel_unaffected(self, throttle):
        throttle.mark_notified("C1", "PBL-12345", T0)
        assert throttle.should_notify("C2", "PBL-12345", T0) is True

    def test_other_ticket_unaffected(self, throttle):
        throttle.mark_notified("C1", "PBL-12345", T0)
        assert throttle.should_notify("C1", "PBL-00000", T0) is True
        throttle.mark_notified("C1", "PBL-00000", T0)
        assert throttle.should_notify("C1", "PBL-00000", T0) is False


class TestMarkNotified:
    def test_overwrites_timestamp(self, throttle):
        throttle.mark_notified("C1", "PBL-1", T0)
        throttle.mark_notified("C1", "PBL-1", T0 + 1000)
        assert throttle.should_notify("C1", "PBL-1", T0 + DEFAULT_COOLDOWN_SECONDS) is False

    def test_store_error_propagates(self):
        store = MagicMock()
        store.set.side_effect = StoreError("down")
        throttle = NotificationThrottle(store)
        with pytest.raises(StoreError):
            throttle.mark_notified("C1", "PBL-1", T0)


class TestFailClosed:
    def test_store_error_suppresses(self):
        store = MagicMock()
        store.get.side_effect = StoreError("down")
        throttle = NotificationThrottle(store)
        assert throttle.should_notify("C1", "PBL-1", T0) is False

    def test_corrupt_entry_suppresses(self):
        store = MemoryStore()
        store.set(NOTIFIED, "C1:PBL-1", "not-a-number")
        assert NotificationThrottle(store).should_notify("C1", "PBL-1", T0) is False

    def test_prune_clears_corrupt_entry(self):
        store = MemoryStore()
        store.set(NOTIFIED, "C1:PBL-1", "not-a-number")
        throttle = NotificationThrottle(store)

        assert throttle.prune(T0) == 1
        assert throttle.should_notify("C1", "PBL-1", T0) is True


class TestPrune:
    def test_removes_only_expired(self):
        store = MemoryStore()
        throttle = NotificationThrottle(store, cooldown_seconds=60, prune_every=0)
        throttle.mark_notified("C1", "OLD-1", T0)
        throttle.mark_notified("C1", "NEW-1", T0 + 100)

        removed = throttle.prune(T0 + 120)

        assert removed == 1
        assert set(store.get_all(NOTIFIED)) == {"C1:NEW-1"}

    def test_pruning_does_not_change_decisions(self):
        throttle = NotificationThrottle(MemoryStore(), cooldown_seconds=60, prune_every=0)
        throttle.mark_notified("C1", "PBL-1", T0)
        throttle.prune(T0 + 30)
        assert throttle.should_notify("C1", "PBL-1", T0 + 30) is False

    def test_automatic_prune(self):
        store = MemoryStore()
        throttle = NotificationThrottle(store, cooldown_seconds=60, prune_every=2)
        throttle.mark_notified("C1", "OLD-1", T0)
        throttle.mark_notified("C1", "NEW-1", T0 + 100)

        assert set(store.get_all(NOTIFIED)) == {"C1:NEW-1"}

    def test_prune_store_error_is_swallowed(self):
        store = MagicMock()
        store.get_all.side_effect = StoreError("down")
        assert NotificationThrottle(store).prune(T0) == 0

    def test_keeps_entry_re_marked_after_snapshot(self):
        store = RemarkAfterSnapshot()
        throttle = NotificationThrottle(store, cooldown_seconds=60, prune_every=0)
        throttle.mark_notified("C2", "PBL-1", T0)

        removed = throttle.prune(T0 + 100)

        assert removed == 0
        assert store.get(NOTIFIED, "C2:PBL-1") == repr(T0 + 100)
        assert throttle.should_notify("C2", "PBL-1", T0 + 110) is False
