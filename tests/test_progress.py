"""Tests for inkscribe.progress module."""

from __future__ import annotations

import threading

from inkscribe.models import ProgressKind
from inkscribe.progress import ProgressChannel


class TestProgressChannel:
    def test_events_delivered_in_order(self) -> None:
        channel = ProgressChannel()
        channel.started("go")
        channel.progress(0.5, "half")
        channel.completed("done")

        events = channel.drain()
        assert [e.kind for e in events] == [
            ProgressKind.STARTED,
            ProgressKind.PROGRESS,
            ProgressKind.COMPLETED,
        ]
        assert [e.progress for e in events] == [0.0, 0.5, 1.0]

    def test_fraction_never_decreases(self) -> None:
        channel = ProgressChannel()
        channel.progress(0.6, "ahead")
        event = channel.progress(0.3, "behind")
        assert event.progress == 0.6
        assert channel.fraction == 0.6

    def test_fraction_clamped(self) -> None:
        channel = ProgressChannel()
        assert channel.progress(1.7, "over").progress == 1.0

    def test_error_keeps_current_fraction(self) -> None:
        channel = ProgressChannel()
        channel.progress(0.4, "working")
        event = channel.error("boom")
        assert event.kind == ProgressKind.ERROR
        assert event.progress == 0.4

    def test_chunk_text_carried(self) -> None:
        channel = ProgressChannel()
        channel.progress(0.5, "Chunk 1 of 2 completed", chunk_text="hello")
        assert channel.drain()[0].chunk_text == "hello"

    def test_drain_keeps_close_marker(self) -> None:
        channel = ProgressChannel()
        channel.progress(0.1, "a")
        channel.close()
        assert len(channel.drain()) == 1
        assert channel.get(timeout=1) is None

    def test_started_restarts_fraction(self) -> None:
        channel = ProgressChannel()
        channel.started("first")
        channel.completed("done")
        channel.drain()

        event = channel.started("second")
        assert event.progress == 0.0
        assert channel.progress(0.1, "early").progress == 0.1

    def test_started_discards_previous_close_marker(self) -> None:
        channel = ProgressChannel()
        channel.started("first")
        channel.close()
        channel.drain()

        channel.started("second")
        channel.close()
        events = list(channel)
        assert [e.message for e in events] == ["second"]

    def test_iteration_across_threads(self) -> None:
        channel = ProgressChannel()

        def produce() -> None:
            for i in range(1, 11):
                channel.progress(i / 10, f"step {i}")
            channel.close()

        producer = threading.Thread(target=produce)
        producer.start()
        fractions = [event.progress for event in channel]
        producer.join()

        assert len(fractions) == 10
        assert fractions == sorted(fractions)
