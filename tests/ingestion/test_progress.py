"""Progress aggregation, tracker emission rules, and the fan-in channel."""

from __future__ import annotations

import threading

from hypothesis import given
from hypothesis import strategies as st

from WordVectors.Ingestion.progress import (
    NullProgressTracker,
    ProgressChannel,
    ProgressTracker,
    aggregate_ratio,
    create_progress_tracker,
)
from WordVectors.Ingestion.types import ChunkProgress


def test_aggregate_ratio_weights_by_bytes_when_totals_known():
    assert aggregate_ratio([ChunkProgress(5, 10), ChunkProgress(10, 30)]) == 0.375


def test_aggregate_ratio_averages_when_any_total_unknown():
    slots = [ChunkProgress(5, 10), ChunkProgress(100, None), ChunkProgress(3, None, done=True)]

    assert aggregate_ratio(slots) == (0.5 + 0.0 + 1.0) / 3


def test_aggregate_ratio_clamps_overshoot():
    assert aggregate_ratio([ChunkProgress(50, 10)]) == 1.0


def test_aggregate_ratio_handles_empty_parts():
    assert aggregate_ratio([ChunkProgress(0, 0)]) == 0.0
    assert aggregate_ratio([ChunkProgress(0, 0, done=True)]) == 1.0
    assert aggregate_ratio([]) == 0.0


@given(
    st.lists(
        st.tuples(
            st.integers(min_value=0, max_value=10_000),
            st.one_of(st.none(), st.integers(min_value=0, max_value=10_000)),
            st.booleans(),
        ),
        min_size=1,
        max_size=8,
    )
)
def test_aggregate_ratio_stays_in_unit_interval(raw_slots):
    slots = [ChunkProgress(loaded, total, done) for loaded, total, done in raw_slots]

    assert 0.0 <= aggregate_ratio(slots) <= 1.0


def test_tracker_holds_back_partial_completion():
    events = []
    tracker = ProgressTracker(1, events.append)

    tracker.begin()
    tracker.start(0, 8)
    tracker.advance(0, 4)
    tracker.advance(0, 4)
    tracker.finish(0)
    tracker.complete()
    tracker.complete()

    assert [event.ratio for event in events] == [0.0, 0.5, 1.0]
    assert events[1].source_index == 0
    assert events[-1].source_index is None


def test_muted_tracker_stops_emitting():
    events = []
    tracker = ProgressTracker(2, events.append)
    tracker.begin()
    tracker.start(0, 8)
    tracker.advance(0, 4)

    tracker.mute()
    tracker.advance(0, 2)
    tracker.finish(0)
    tracker.complete()

    assert [event.ratio for event in events] == [0.0, 0.25]


def test_tracker_accepts_concurrent_updates():
    events = []
    tracker = ProgressTracker(4, events.append)
    for index in range(4):
        tracker.start(index, 1000)

    def worker(index):
        for _ in range(100):
            tracker.advance(index, 10)

    threads = [threading.Thread(target=worker, args=(index,)) for index in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    # The final chunk reaches 1.0 and is held back for complete().
    assert len(events) == 399
    ratios = [event.ratio for event in events]
    assert ratios == sorted(ratios)
    assert tracker.ratio() == 1.0


def test_create_progress_tracker_variants():
    assert isinstance(create_progress_tracker(2, None), NullProgressTracker)

    ratios = []
    tracker = create_progress_tracker(1, ratios.append)
    tracker.begin()
    tracker.complete()
    assert ratios == [0.0, 1.0]


def test_tracker_close_closes_channel_sink():
    channel = ProgressChannel()
    tracker = create_progress_tracker(1, channel)

    tracker.begin()
    tracker.close()

    assert channel.closed
    assert [event.ratio for event in channel] == [0.0]


def test_channel_can_be_consumed_from_another_thread():
    channel = ProgressChannel()
    received = []
    consumer = threading.Thread(target=lambda: received.extend(event.ratio for event in channel))
    consumer.start()

    for ratio in (0.0, 0.25, 1.0):
        channel(ratio)
    channel.close()
    consumer.join(timeout=5)

    assert received == [0.0, 0.25, 1.0]


def test_channel_drops_events_after_close():
    channel = ProgressChannel()
    channel.close()
    channel(0.5)
    channel.close()

    assert list(channel) == []
