"""Tests for PlaybackScheduler driven by the ManualTimers virtual clock."""

import pytest

from reveal_engine.playback.protocol import LifecycleState, PlaybackPhase
from reveal_engine.playback.scheduler import PlaybackScheduler, should_animate
from reveal_engine.text.protocol import BlockType
from reveal_engine.timers import ManualTimers


MERMAID_EXAMPLE = "See: ```mermaid\nA-->B\n``` done."


class RecordingTimers(ManualTimers):
    """ManualTimers that also remembers every scheduled callback."""

    def __init__(self):
        super().__init__()
        self.scheduled = []

    def call_later(self, delay, callback, *args):
        self.scheduled.append((callback, args))
        return super().call_later(delay, callback, *args)


class Events:
    """Records every scheduler callback along with the text shown at the time."""

    def __init__(self):
        self.log = []
        self.scheduler = None

    def _shown(self):
        return self.scheduler.displayed_text if self.scheduler else None

    def make(self, timers, config, **kwargs):
        callbacks = dict(
            on_complete=lambda mid: self.log.append(("complete", mid)),
            on_block_detected=lambda *a: self.log.append(("detected",) + a + (self._shown(),)),
            on_block_update=lambda *a: self.log.append(("update",) + a + (self._shown(),)),
            on_block_end=lambda *a: self.log.append(("end",) + a + (self._shown(),)),
        )
        callbacks.update(kwargs)
        self.scheduler = PlaybackScheduler(timers, config, **callbacks)
        return self.scheduler

    def kinds(self):
        return [entry[0] for entry in self.log]


@pytest.fixture
def events():
    return Events()


class TestImmediateDisplay:

    def test_disabled_shows_everything(self, timers, config, events):
        scheduler = events.make(timers, config)
        scheduler.update("Hello world", "m1", enabled=False)
        assert scheduler.displayed_text == "Hello world"
        assert scheduler.is_typing is False
        assert scheduler.phase is PlaybackPhase.COMPLETE
        assert timers.pending == 0
        assert events.log == []

    def test_already_complete_shows_everything(self, timers, config, events):
        scheduler = events.make(timers, config)
        scheduler.update(MERMAID_EXAMPLE, "m1", is_already_complete=True)
        assert scheduler.displayed_text == MERMAID_EXAMPLE
        assert scheduler.is_typing is False
        assert timers.pending == 0
        assert events.log == []

    def test_disabling_mid_stream_jumps_to_end(self, timers, config, events):
        scheduler = events.make(timers, config)
        scheduler.update("one two three", "m1")
        timers.step()
        assert scheduler.displayed_text == "one"
        scheduler.update("one two three", "m1", enabled=False)
        assert scheduler.displayed_text == "one two three"
        assert timers.pending == 0
        timers.run_until_idle()
        assert "complete" not in events.kinds()


class TestTiming:

    def test_nothing_revealed_before_initial_delay(self, timers, config):
        scheduler = PlaybackScheduler(timers, config)
        scheduler.update("a b", "m1")
        assert scheduler.is_typing
        assert scheduler.displayed_text == ""
        timers.advance(0.19)
        assert scheduler.displayed_text == ""

    def test_word_and_whitespace_delays(self, timers, config):
        scheduler = PlaybackScheduler(timers, config)
        scheduler.update("a b", "m1")

        observed = []
        while timers.step():
            observed.append((round(timers.time(), 6), scheduler.displayed_text))
        assert observed == [
            (0.2, "a"),
            (0.3, "a "),
            (0.35, "a b"),
        ]

    def test_advance_reveals_in_order(self, timers, config):
        scheduler = PlaybackScheduler(timers, config)
        scheduler.update("a b", "m1")
        timers.advance(0.25)
        assert scheduler.displayed_text == "a"
        timers.advance(0.07)
        assert scheduler.displayed_text == "a "
        timers.advance(0.1)
        assert scheduler.displayed_text == "a b"
        assert not scheduler.is_typing

    def test_at_most_one_pending_timer(self, timers, config):
        scheduler = PlaybackScheduler(timers, config)
        scheduler.update(MERMAID_EXAMPLE, "m1")
        scheduler.update(MERMAID_EXAMPLE + " more", "m1")
        assert timers.pending == 1
        while timers.step():
            assert timers.pending <= 1
        assert scheduler.has_pending_timer is False

    def test_rate_comes_from_config(self, timers, config):
        scheduler = PlaybackScheduler(timers, config)
        scheduler.update("Hello", "m1")
        assert scheduler.rate == 10.0


class TestProgress:

    CONTENT = "The quick  brown fox\n\njumps over ```python\nx = 1\n``` the dog."

    def test_revealed_offset_monotone_on_token_boundaries(self, timers, config):
        scheduler = PlaybackScheduler(timers, config)
        scheduler.update(self.CONTENT, "m1")
        boundaries = {0} | {t.end for t in scheduler.tokens}

        previous = 0
        while timers.step():
            offset = scheduler.state.revealed_offset
            assert offset >= previous
            assert offset in boundaries
            assert self.CONTENT.startswith(scheduler.displayed_text)
            previous = offset

    def test_converges_to_full_content(self, timers, config, events):
        scheduler = events.make(timers, config)
        scheduler.update(self.CONTENT, "m1")
        timers.run_until_idle()
        assert scheduler.displayed_text == self.CONTENT
        assert scheduler.progress == 1.0
        assert scheduler.is_typing is False
        assert scheduler.state.is_complete
        assert events.log.count(("complete", "m1")) == 1

    def test_complete_fires_in_tick_revealing_last_token(self, timers, config, events):
        scheduler = events.make(timers, config)
        scheduler.update("a b", "m1")
        timers.step()
        timers.step()
        assert "complete" not in events.kinds()
        timers.step()
        assert events.kinds()[-1] == "complete"
        assert timers.pending == 0

    def test_progress_fraction(self, timers, config):
        scheduler = PlaybackScheduler(timers, config)
        scheduler.update("abcd efgh", "m1")
        assert scheduler.progress == 0.0
        timers.step()
        assert scheduler.progress == pytest.approx(4 / 9)


class TestBlockEvents:

    def test_mermaid_example(self, timers, config, events):
        scheduler = events.make(timers, config)
        scheduler.update(MERMAID_EXAMPLE, "m1")
        timers.run_until_idle()

        blocks = [e for e in events.log if e[0] != "complete"]
        assert [e[0] for e in blocks] == ["detected", "update", "update", "end"]
        assert blocks[0][1:5] == (BlockType.MERMAID, "", None, True)
        end = blocks[-1]
        assert end[1:5] == (BlockType.MERMAID, "A-->B", None, True)
        assert end[5] == "See: ```mermaid\nA-->B\n```"
        assert " done." not in end[5]
        assert events.kinds()[-1] == "complete"

    def test_first_block_flag(self, timers, config, events):
        scheduler = events.make(timers, config)
        scheduler.update("```python\nx = 1\n```\nthen\n```javascript\nlet y;\n```", "m1")
        timers.run_until_idle()
        detected = [e for e in events.log if e[0] == "detected"]
        assert [(e[3], e[4]) for e in detected] == [("python", True), ("javascript", False)]

    def test_current_block_while_typing(self, timers, config):
        scheduler = PlaybackScheduler(timers, config)
        scheduler.update(MERMAID_EXAMPLE, "m1")
        seen = set()
        while timers.step():
            block = scheduler.current_block
            if block is not None:
                seen.add(block.block_type)
        assert seen == {BlockType.MERMAID}
        assert scheduler.current_block is None

    def test_blocks_and_records(self, timers, config):
        scheduler = PlaybackScheduler(timers, config)
        scheduler.update(MERMAID_EXAMPLE, "m1")
        assert [b.block_type for b in scheduler.blocks] == [BlockType.MERMAID]
        assert scheduler.records == []
        timers.run_until_idle()
        assert [r.state for r in scheduler.records] == [LifecycleState.ENDED]


class TestRestart:

    def test_content_replaced_mid_stream(self, config, events):
        timers = RecordingTimers()
        scheduler = events.make(timers, config)
        old = "```python\nalpha beta gamma delta\n```"
        scheduler.update(old, "m1")
        for _ in range(3):
            timers.step()
        assert events.kinds() == ["detected", "update"]
        stale_callback, stale_args = timers.scheduled[-1]

        events.log.clear()
        scheduler.update("Plain reply.", "m1")
        assert timers.pending == 1

        stale_callback(*stale_args)
        assert scheduler.displayed_text == ""
        assert events.log == []

        timers.run_until_idle()
        assert scheduler.displayed_text == "Plain reply."
        assert events.log == [("complete", "m1")]

    def test_new_message_id_restarts(self, timers, config, events):
        scheduler = events.make(timers, config)
        scheduler.update("Hello world", "m1")
        generation = scheduler.generation
        assert scheduler.update("Hello world", "m2") is True
        assert scheduler.generation > generation
        assert scheduler.displayed_text == ""
        timers.run_until_idle()
        assert events.log == [("complete", "m2")]

    def test_identical_update_is_ignored(self, timers, config):
        scheduler = PlaybackScheduler(timers, config)
        assert scheduler.update("Hello world", "m1") is True
        timers.step()
        assert scheduler.update("Hello world", "m1") is False
        assert scheduler.displayed_text == "Hello"

    def test_restart_makes_next_block_first_again(self, timers, config, events):
        scheduler = events.make(timers, config)
        scheduler.update("```dot\ndigraph{}\n```", "m1")
        timers.run_until_idle()
        scheduler.update("```html\n<b/>\n```", "m2")
        timers.run_until_idle()
        detected = [e for e in events.log if e[0] == "detected"]
        assert [(e[1], e[4]) for e in detected] == [
            (BlockType.DOT, True),
            (BlockType.HTML, True),
        ]

    def test_update_from_callback(self, timers, config):
        scheduler = None
        completed = []

        def on_detected(*args):
            scheduler.update("Replaced.", "m1")

        scheduler = PlaybackScheduler(
            timers, config,
            on_complete=completed.append,
            on_block_detected=on_detected,
        )
        scheduler.update("```mermaid\nA-->B\n```", "m1")
        timers.run_until_idle()
        assert scheduler.displayed_text == "Replaced."
        assert completed == ["m1"]


class TestEmptyContent:

    @pytest.mark.parametrize("content", ["", "   \n\t", None])
    def test_completes_immediately(self, timers, config, events, content):
        scheduler = events.make(timers, config)
        scheduler.update(content, "m1")
        assert scheduler.displayed_text == (content or "")
        assert scheduler.is_typing is False
        assert timers.pending == 0
        assert events.log == [("complete", "m1")]


class TestStopAndDispose:

    def test_stop_freezes_without_completion(self, timers, config, events):
        scheduler = events.make(timers, config)
        scheduler.update("one two three", "m1")
        timers.step()
        scheduler.stop()
        timers.run_until_idle()
        assert scheduler.displayed_text == "one"
        assert scheduler.is_typing is False
        assert scheduler.phase is PlaybackPhase.COMPLETE
        assert events.log == []

    def test_dispose_cancels_timer(self, timers, config, events):
        scheduler = events.make(timers, config)
        scheduler.update(MERMAID_EXAMPLE, "m1")
        timers.step()
        scheduler.dispose()
        assert timers.pending == 0
        count = len(events.log)
        timers.run_until_idle()
        assert len(events.log) == count

    def test_dispose_is_idempotent(self, timers, config):
        scheduler = PlaybackScheduler(timers, config)
        scheduler.dispose()
        scheduler.dispose()

    def test_update_after_dispose_raises(self, timers, config):
        scheduler = PlaybackScheduler(timers, config)
        scheduler.dispose()
        with pytest.raises(RuntimeError):
            scheduler.update("Hello", "m1")


class TestOnRestart:

    def test_called_once_per_restart_before_reveal(self, timers, config):
        seen = []
        scheduler = None

        def on_restart(message_id, content):
            seen.append((message_id, content, scheduler.displayed_text))

        scheduler = PlaybackScheduler(timers, config, on_restart=on_restart)
        scheduler.update("one two", "m1")
        scheduler.update("one two", "m1")
        timers.step()
        scheduler.update("three", "m1")
        assert seen == [("m1", "one two", ""), ("m1", "three", "")]

    def test_restart_from_on_restart_wins(self, timers, config):
        completed = []
        scheduler = None

        def on_restart(message_id, content):
            if content == "first":
                scheduler.update("second", message_id)

        scheduler = PlaybackScheduler(
            timers, config, on_complete=completed.append, on_restart=on_restart,
        )
        scheduler.update("first", "m1")
        assert timers.pending == 1
        timers.run_until_idle()
        assert scheduler.displayed_text == "second"
        assert completed == ["m1"]


class TestCallbackErrors:

    def test_failing_on_complete_is_logged(self, timers, config, caplog):
        def boom(message_id):
            raise ValueError("host gone")

        scheduler = PlaybackScheduler(timers, config, on_complete=boom)
        scheduler.update("Hi", "m1")
        timers.run_until_idle()
        assert scheduler.state.is_complete
        assert "on_complete callback failed" in caplog.text

    def test_on_change_sees_each_reveal(self, timers, config):
        shown = []
        scheduler = PlaybackScheduler(timers, config, on_change=shown.append)
        scheduler.update("a b", "m1")
        timers.run_until_idle()
        assert shown[0] == ""
        assert shown[1:4] == ["a", "a ", "a b"]


class TestShouldAnimate:

    @pytest.mark.parametrize("enable,is_user,is_last,expected", [
        (True, False, True, True),
        (False, False, True, False),
        (True, True, True, False),
        (True, False, False, False),
    ])
    def test_only_latest_assistant_message(self, enable, is_user, is_last, expected):
        assert should_animate(enable, is_user, is_last) is expected
