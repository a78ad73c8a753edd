"""Behavioral integrity signals collected during a sandbox editing session.

The client records an append-only stream of events (pastes, focus loss,
copies, right-clicks, keydown timings). At submission time that stream is
folded once into immutable counters, and the counters into a flag decision.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from functools import reduce
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

import config
from utils.logger import get_logger

logger = get_logger()


class EventKind(str, Enum):
    PASTE = "paste"
    VISIBILITY_LOSS = "visibility_loss"
    RAPID_BURST = "rapid_burst"
    COPY = "copy"
    RIGHT_CLICK = "right_click"


@dataclass(frozen=True)
class IntegrityEvent:
    kind: EventKind
    at: datetime
    # Characters pasted, for PASTE events
    size: int = 0


@dataclass(frozen=True)
class IntegrityFlags:
    large_pastes: int = 0
    tab_switches: int = 0
    rapid_bursts: int = 0
    copy_attempts: int = 0
    right_clicks: int = 0
    events: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def total_flags(self) -> int:
        return self.large_pastes + self.tab_switches + self.rapid_bursts

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "IntegrityFlags":
        """Reads the counters a client submits (camelCase or snake_case keys).

        Missing, negative or non-numeric counters read as 0.
        """
        if not payload:
            return cls()

        def counter(camel: str, snake: str) -> int:
            value = payload.get(camel, payload.get(snake, 0))
            try:
                return max(0, int(value))
            except (TypeError, ValueError):
                logger.warning(f"Ignoring non-numeric integrity counter {camel}={value!r}")
                return 0

        events = payload.get("events") or ()
        return cls(
            large_pastes=counter("largePastes", "large_pastes"),
            tab_switches=counter("tabSwitches", "tab_switches"),
            rapid_bursts=counter("rapidBursts", "rapid_bursts"),
            copy_attempts=counter("copyAttempts", "copy_attempts"),
            right_clicks=counter("rightClicks", "right_clicks"),
            events=tuple(str(e) for e in events),
        )


@dataclass(frozen=True)
class IntegritySummary:
    total_flags: int
    should_flag: bool
    reasons: List[str] = field(default_factory=list)


_EVENT_MESSAGES = {
    EventKind.VISIBILITY_LOSS: "Switched away from tab",
    EventKind.RAPID_BURST: "Rapid typing burst detected (possible automation)",
    EventKind.COPY: "Copy attempted",
    EventKind.RIGHT_CLICK: "Right-click attempted",
}


def _apply_event(flags: IntegrityFlags, event: IntegrityEvent) -> IntegrityFlags:
    if event.kind is EventKind.PASTE:
        if event.size <= config.LARGE_PASTE_CHARS:
            return flags
        message = f"Large paste detected: {event.size} characters"
        flags = replace(flags, large_pastes=flags.large_pastes + 1)
    elif event.kind is EventKind.VISIBILITY_LOSS:
        flags = replace(flags, tab_switches=flags.tab_switches + 1)
        message = _EVENT_MESSAGES[event.kind]
    elif event.kind is EventKind.RAPID_BURST:
        flags = replace(flags, rapid_bursts=flags.rapid_bursts + 1)
        message = _EVENT_MESSAGES[event.kind]
    elif event.kind is EventKind.COPY:
        flags = replace(flags, copy_attempts=flags.copy_attempts + 1)
        message = _EVENT_MESSAGES[event.kind]
    else:
        flags = replace(flags, right_clicks=flags.right_clicks + 1)
        message = _EVENT_MESSAGES[event.kind]
    return replace(flags, events=flags.events + (f"{event.at.isoformat()}: {message}",))


def fold_events(events: Iterable[IntegrityEvent]) -> IntegrityFlags:
    """Reduces an event stream into counters and the textual event log.

    Events are applied in the order given; pastes at or under the large-paste
    size are ignored entirely.
    """
    return reduce(_apply_event, events, IntegrityFlags())


def detect_rapid_bursts(keydowns: Sequence[datetime]) -> List[IntegrityEvent]:
    """Turns keydown instants into RAPID_BURST events.

    Each gap shorter than the burst interval extends the current run; a
    slower gap resets it. When a run exceeds the burst length one burst is
    recorded and the run starts over.
    """
    bursts: List[IntegrityEvent] = []
    run = 0
    for previous, current in zip(keydowns, keydowns[1:]):
        gap_ms = (current - previous).total_seconds() * 1000
        if gap_ms < config.BURST_KEY_INTERVAL_MS:
            run += 1
            if run > config.BURST_KEY_RUN:
                bursts.append(IntegrityEvent(EventKind.RAPID_BURST, current))
                run = 0
        else:
            run = 0
    return bursts


def count_rapid_bursts(keydowns: Sequence[datetime]) -> int:
    return len(detect_rapid_bursts(keydowns))


def integrity_reasons(flags: IntegrityFlags) -> List[str]:
    """Human-readable reasons for every non-zero signal, most serious first."""
    reasons = []
    if flags.large_pastes:
        reasons.append(f"{flags.large_pastes} large paste(s) detected")
    if flags.tab_switches:
        reasons.append(f"{flags.tab_switches} tab switch(es) during the session")
    if flags.rapid_bursts:
        reasons.append(f"{flags.rapid_bursts} rapid typing burst(s) (possible automation)")
    if flags.copy_attempts:
        reasons.append(f"{flags.copy_attempts} copy attempt(s)")
    if flags.right_clicks:
        reasons.append(f"{flags.right_clicks} blocked right-click(s)")
    return reasons


def aggregate_integrity_signals(flags: IntegrityFlags, threshold: Optional[int] = None) -> IntegritySummary:
    """Folds counters into a flag decision.

    ``total_flags`` counts large pastes, tab switches and rapid bursts; the
    session is flagged when it exceeds ``threshold``. Copies and right-clicks
    are reported but never counted.
    """
    threshold = config.INTEGRITY_FLAG_THRESHOLD if threshold is None else threshold
    total = flags.total_flags
    should_flag = total > threshold
    if should_flag:
        logger.info(f"Integrity flag raised: {total} signal(s) over threshold {threshold}")
    return IntegritySummary(total_flags=total, should_flag=should_flag, reasons=integrity_reasons(flags))
