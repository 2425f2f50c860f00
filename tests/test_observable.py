"""
Tests for the Observable primitive: notification order, absence, unsubscription
and cascade rules.
"""

import threading

import pytest

from pinmap import (
    ABSENT,
    AbsentValueError,
    CascadeDepthExceededError,
    Observable,
    ReactiveFunctionError,
    ReentrantNotificationError,
    reactive,
)
from pinmap.observable import NotificationContext


class TestObservableValue:
    """Tests for reading and writing the held value."""

    def test_observable_created_with_value_returns_it(self):
        """Observable should return its initial value."""
        obs = Observable("name", "Alice")

        assert obs.value == "Alice"
        assert obs.get() == "Alice"
        assert obs.has_value

    def test_observable_created_without_value_is_absent(self):
        """Reading an absent observable should raise AbsentValueError."""
        obs = Observable("pins")

        assert not obs.has_value
        with pytest.raises(AbsentValueError) as excinfo:
            obs.get()
        assert excinfo.value.key == "pins"

    def test_absent_value_error_is_a_lookup_error(self):
        """AbsentValueError should be catchable as LookupError."""
        with pytest.raises(LookupError):
            Observable("pins").value

    def test_peek_returns_default_when_absent(self):
        """peek should return the default instead of raising."""
        obs = Observable("pins")

        assert obs.peek() is None
        assert obs.peek(()) == ()

    def test_none_is_a_value_not_absence(self):
        """Setting None should count as having a value."""
        obs = Observable("maybe")
        obs.set(None)

        assert obs.has_value
        assert obs.value is None

    def test_setting_absent_sentinel_is_rejected(self):
        """ABSENT only marks a missing value and cannot be set."""
        obs = Observable("x", 1)

        with pytest.raises(ValueError):
            obs.set(ABSENT)
        assert obs.value == 1

    def test_value_property_setter_notifies(self):
        """Assigning .value should behave like set()."""
        obs = Observable("x", 0)
        seen = []
        obs.subscribe(seen.append)

        obs.value = 3

        assert seen == [3]


class TestObservableNotification:
    """Tests for subscriber fan-out."""

    def test_set_notifies_each_subscriber_once_in_registration_order(self):
        """set(v) should call every subscriber once with v, in order."""
        # Arrange
        obs = Observable("counter", 0)
        calls = []
        for index in range(5):
            obs.subscribe(lambda value, index=index: calls.append((index, value)))

        # Act
        obs.set(7)

        # Assert
        assert calls == [(0, 7), (1, 7), (2, 7), (3, 7), (4, 7)]

    def test_new_subscriber_does_not_receive_earlier_values(self):
        """A subscriber added after N sets should only see later sets."""
        # Arrange
        obs = Observable("counter", 0)
        for value in range(1, 4):
            obs.set(value)
        seen = []

        # Act
        obs.subscribe(seen.append)

        # Assert
        assert seen == []
        obs.set(4)
        assert seen == [4]

    def test_equal_values_still_notify(self):
        """Every set is an event, even when the value is unchanged."""
        obs = Observable("name", "Alice")
        seen = []
        obs.subscribe(seen.append)

        obs.set("Alice")
        obs.set("Alice")

        assert seen == ["Alice", "Alice"]

    def test_value_is_assigned_before_subscribers_run(self):
        """Reading the observable inside a subscriber should see the new value."""
        obs = Observable("pins")
        read_back = []
        obs.subscribe(lambda _: read_back.append(obs.value))

        obs.set(("a",))

        assert read_back == [("a",)]

    def test_subscriber_added_during_notification_waits_for_next_event(self):
        """A subscriber registered mid-notification should not get the event in flight."""
        obs = Observable("x", 0)
        late = []

        def add_late(_):
            if not late and obs.subscriber_count == 1:
                obs.subscribe(late.append)

        obs.subscribe(add_late)
        obs.set(1)
        assert late == []

        obs.set(2)
        assert late == [2]

    def test_subscription_cancelled_mid_notification_is_skipped(self):
        """Cancelling a later subscription during notification should skip it."""
        obs = Observable("x", 0)
        second_calls = []
        holder = {}

        obs.subscribe(lambda _: holder["second"].cancel())
        holder["second"] = obs.subscribe(second_calls.append)

        obs.set(1)

        assert second_calls == []

    def test_subscriber_exception_propagates_and_value_stays_set(self):
        """A failing subscriber should surface its error; later subscribers are skipped."""
        obs = Observable("x", 0)
        later = []

        def boom(_):
            raise RuntimeError("subscriber failed")

        obs.subscribe(boom)
        obs.subscribe(later.append)

        with pytest.raises(RuntimeError, match="subscriber failed"):
            obs.set(5)

        assert obs.value == 5
        assert later == []
        assert NotificationContext.depth() == 0


class TestSubscription:
    """Tests for subscription handles and unsubscribe."""

    def test_cancel_stops_notifications(self):
        """A cancelled subscription should receive nothing further."""
        obs = Observable("x", 0)
        seen = []
        subscription = obs.subscribe(seen.append)

        obs.set(1)
        subscription.cancel()
        obs.set(2)

        assert seen == [1]
        assert not subscription.active
        assert obs.subscriber_count == 0

    def test_cancel_is_idempotent(self):
        """Cancelling twice should be harmless."""
        obs = Observable("x", 0)
        subscription = obs.subscribe(lambda _: None)

        subscription.cancel()
        subscription.dispose()

        assert obs.subscriber_count == 0

    def test_subscription_as_context_manager(self):
        """Leaving the with block should cancel the subscription."""
        obs = Observable("x", 0)
        seen = []

        with obs.observe(seen.append):
            obs.set(1)
        obs.set(2)

        assert seen == [1]

    def test_unsubscribe_removes_every_registration_of_callback(self):
        """unsubscribe(callback) should drop all of its subscriptions."""
        obs = Observable("x", 0)
        calls = []

        def callback(value):
            calls.append(value)

        obs.subscribe(callback)
        obs.subscribe(callback)
        obs.set(1)
        obs.unsubscribe(callback)
        obs.set(2)

        assert calls == [1, 1]

    def test_unsubscribe_unknown_callback_is_ignored(self):
        """Unsubscribing something never registered should not raise."""
        Observable("x", 0).unsubscribe(lambda _: None)


class TestCascades:
    """Tests for set() calls made from inside notifications."""

    def test_cascade_into_another_observable_is_allowed_within_limit(self):
        """One nested hop should run fully before the outer set returns."""
        source = Observable("source", 0, max_cascade_depth=1)
        target = Observable("target", 0, max_cascade_depth=1)
        order = []

        source.subscribe(lambda v: target.set(v * 10))
        target.subscribe(lambda v: order.append(("target", v)))
        source.subscribe(lambda v: order.append(("source", v)))

        source.set(2)

        assert order == [("target", 20), ("source", 2)]

    def test_setting_the_notifying_observable_raises(self):
        """A subscriber setting its own observable should be reported."""
        obs = Observable("loop", 0)
        obs.subscribe(lambda v: obs.set(v + 1))

        with pytest.raises(ReentrantNotificationError):
            obs.set(1)
        assert obs.value == 1

    def test_cascade_beyond_limit_raises_before_changing_value(self):
        """A chain deeper than max_cascade_depth should stop with a typed error."""
        first = Observable("first", 0, max_cascade_depth=1)
        second = Observable("second", 0, max_cascade_depth=1)
        third = Observable("third", 0, max_cascade_depth=1)
        first.subscribe(second.set)
        second.subscribe(third.set)

        with pytest.raises(CascadeDepthExceededError) as excinfo:
            first.set(1)

        assert excinfo.value.depth == 2
        assert excinfo.value.limit == 1
        assert third.value == 0
        assert isinstance(excinfo.value, ReentrantNotificationError)

    def test_unbounded_depth_allows_long_chains(self):
        """max_cascade_depth=None should allow any nesting."""
        chain = [Observable(f"n{i}", 0) for i in range(6)]
        for upstream, downstream in zip(chain, chain[1:]):
            upstream.subscribe(downstream.set)

        chain[0].set(9)

        assert [obs.value for obs in chain] == [9] * 6

    def test_zero_depth_forbids_any_nested_set(self):
        """max_cascade_depth=0 should reject every cascade."""
        source = Observable("source", 0)
        target = Observable("target", 0, max_cascade_depth=0)
        source.subscribe(target.set)

        with pytest.raises(CascadeDepthExceededError):
            source.set(1)

    def test_negative_depth_is_rejected(self):
        with pytest.raises(ValueError):
            Observable("x", max_cascade_depth=-1)


class TestThreading:
    """Tests for use from several threads."""

    def test_concurrent_sets_each_notify_with_their_own_value(self):
        """Each subscriber call should carry the value of the set that raised it."""
        obs = Observable("x", 0)
        seen = []
        lock = threading.Lock()

        def record(value):
            with lock:
                seen.append(value)

        obs.subscribe(record)
        threads = [threading.Thread(target=obs.set, args=(i,)) for i in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(seen) == list(range(20))

    def test_notifications_on_other_threads_do_not_count_as_cascades(self):
        """The in-flight stack is per thread."""
        obs = Observable("x", 0, max_cascade_depth=0)
        other = Observable("other", 0)
        errors = []

        def set_from_thread(_):
            thread = threading.Thread(target=lambda: _safe_set(obs, 5, errors))
            thread.start()
            thread.join()

        other.subscribe(set_from_thread)
        other.set(1)

        assert errors == []
        assert obs.value == 5


def _safe_set(obs, value, errors):
    try:
        obs.set(value)
    except Exception as exc:  # noqa: BLE001
        errors.append(exc)


class TestReactiveDecorator:
    """Tests for the @reactive decorator."""

    def test_reactive_function_runs_on_change_only(self):
        """Reactive functions should not run on decoration."""
        obs = Observable("x", 1)
        seen = []

        @reactive(obs)
        def track(value):
            seen.append(value)

        assert seen == []
        obs.set(2)
        assert seen == [2]

    def test_reactive_function_cannot_be_called_manually(self):
        obs = Observable("x", 1)

        @reactive(obs)
        def track(value):
            return value

        with pytest.raises(ReactiveFunctionError):
            track(3)

    def test_unsubscribe_restores_normal_function(self):
        """After unsubscribe the function should stop reacting and be callable."""
        first = Observable("first", 1)
        second = Observable("second", 1)
        seen = []

        @reactive(first, second)
        def track(value):
            seen.append(value)
            return value

        first.set(2)
        second.set(3)
        track.unsubscribe()
        first.set(4)

        assert seen == [2, 3]
        assert track(5) == 5
        assert track.__name__ == "track"
