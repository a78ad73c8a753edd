"""
Test: Integrity event folding, burst detection and flag aggregation.
"""
from datetime import datetime, timedelta

from core.integrity import (
    EventKind, IntegrityEvent, IntegrityFlags, aggregate_integrity_signals,
    count_rapid_bursts, detect_rapid_bursts, fold_events, integrity_reasons,
)

T0 = datetime(2024, 3, 1, 9, 0, 0)


def keydowns(count, gap_ms, start=T0):
    return [start + timedelta(milliseconds=i * gap_ms) for i in range(count)]


class TestAggregateIntegritySignals:
    def test_at_threshold_not_flagged(self):
        summary = aggregate_integrity_signals(IntegrityFlags(large_pastes=2, tab_switches=1))
        assert summary.total_flags == 3
        assert not summary.should_flag

    def test_over_threshold_flagged(self):
        summary = aggregate_integrity_signals(IntegrityFlags(large_pastes=2, tab_switches=1, rapid_bursts=1))
        assert summary.total_flags == 4
        assert summary.should_flag

    def test_copies_and_right_clicks_not_counted(self):
        summary = aggregate_integrity_signals(IntegrityFlags(copy_attempts=10, right_clicks=10))
        assert summary.total_flags == 0
        assert not summary.should_flag
        assert "10 copy attempt(s)" in summary.reasons

    def test_custom_threshold(self):
        assert aggregate_integrity_signals(IntegrityFlags(tab_switches=1), threshold=0).should_flag

    def test_clean_session(self):
        summary = aggregate_integrity_signals(IntegrityFlags())
        assert summary.total_flags == 0
        assert summary.reasons == []


class TestFromPayload:
    def test_camel_case(self):
        flags = IntegrityFlags.from_payload({"largePastes": 2, "tabSwitches": 1, "rapidBursts": 0, "events": ["x"]})
        assert (flags.large_pastes, flags.tab_switches, flags.rapid_bursts) == (2, 1, 0)
        assert flags.events == ("x",)

    def test_snake_case(self):
        assert IntegrityFlags.from_payload({"tab_switches": 4}).tab_switches == 4

    def test_bad_values_read_as_zero(self):
        flags = IntegrityFlags.from_payload({"largePastes": "lots", "tabSwitches": None, "rapidBursts": -2})
        assert flags.total_flags == 0

    def test_numeric_strings(self):
        assert IntegrityFlags.from_payload({"tabSwitches": "3"}).tab_switches == 3

    def test_missing_payload(self):
        assert IntegrityFlags.from_payload(None) == IntegrityFlags()


class TestFoldEvents:
    def test_counts_and_log(self):
        events = [
            IntegrityEvent(EventKind.PASTE, T0, size=120),
            IntegrityEvent(EventKind.PASTE, T0 + timedelta(seconds=1), size=40),
            IntegrityEvent(EventKind.VISIBILITY_LOSS, T0 + timedelta(seconds=2)),
            IntegrityEvent(EventKind.COPY, T0 + timedelta(seconds=3)),
            IntegrityEvent(EventKind.RIGHT_CLICK, T0 + timedelta(seconds=4)),
        ]
        flags = fold_events(events)
        assert flags.large_pastes == 1
        assert flags.tab_switches == 1
        assert flags.copy_attempts == 1
        assert flags.right_clicks == 1
        assert flags.events[0] == "2024-03-01T09:00:00: Large paste detected: 120 characters"
        assert len(flags.events) == 4

    def test_paste_at_limit_ignored(self):
        assert fold_events([IntegrityEvent(EventKind.PASTE, T0, size=80)]).large_pastes == 0

    def test_empty_stream(self):
        assert fold_events([]) == IntegrityFlags()

    def test_bursts_feed_fold(self):
        flags = fold_events(detect_rapid_bursts(keydowns(32, 10)))
        assert flags.rapid_bursts == 1


class TestRapidBursts:
    def test_thirty_fast_gaps_is_not_a_burst(self):
        assert count_rapid_bursts(keydowns(31, 10)) == 0

    def test_thirty_one_fast_gaps_is_a_burst(self):
        assert count_rapid_bursts(keydowns(32, 10)) == 1

    def test_counter_resets_after_burst(self):
        assert count_rapid_bursts(keydowns(63, 10)) == 2

    def test_slow_typing(self):
        assert count_rapid_bursts(keydowns(200, 150)) == 0

    def test_slow_gap_resets_run(self):
        first = keydowns(20, 10)
        second = keydowns(20, 10, start=first[-1] + timedelta(seconds=1))
        assert count_rapid_bursts(first + second) == 0

    def test_fewer_than_two_keys(self):
        assert count_rapid_bursts([]) == 0
        assert count_rapid_bursts([T0]) == 0


class TestIntegrityReasons:
    def test_order(self):
        reasons = integrity_reasons(IntegrityFlags(large_pastes=2, tab_switches=1, rapid_bursts=1))
        assert reasons == [
            "2 large paste(s) detected",
            "1 tab switch(es) during the session",
            "1 rapid typing burst(s) (possible automation)",
        ]
