"""Tests for pathfx.textual — Textual integration layer."""

import threading

import pytest
from textual.css.query import NoMatches

from pathfx import observable
from pathfx import textual as stx


class _MockApp:
    """Minimal mock matching the Textual App interface stx needs."""

    def __init__(self, *, is_running=True):
        self.is_running = is_running
        self._call_from_thread_log = []

    def call_from_thread(self, fn, *args):
        self._call_from_thread_log.append((fn, args))
        fn(*args)


class TestOn:
    def test_fires_when_safe(self):
        app = _MockApp()
        state = observable({"title": "a"})
        seen = []
        stx.on(app, state.title, lambda e: seen.append(e.value))
        state.title.set("b")
        assert seen == ["b"]

    def test_skips_during_pause(self):
        app = _MockApp()
        state = observable({"title": "a"})
        seen = []
        stx.on(app, state.title, lambda e: seen.append(e.value))
        with stx.pause(app):
            state.title.set("b")
        assert seen == []

    def test_shallow(self):
        app = _MockApp()
        state = observable({"rows": {"r1": {"v": 1}}})
        seen = []
        stx.on(app, state.rows, seen.append, shallow=True)
        state.rows.r1.v.set(2)
        assert seen == []
        state.rows.r2.set({"v": 0})
        assert len(seen) == 1

    def test_unsubscribe(self):
        app = _MockApp()
        state = observable({"status": 1})
        seen = []
        unsub = stx.on(app, state.status, seen.append)
        unsub()
        state.status.set(2)
        assert seen == []

    def test_catches_nomatch(self):
        app = _MockApp()
        state = observable({"rows": []})

        def _render(event):
            raise NoMatches("#rows")

        stx.on(app, state.rows, _render)
        state.rows[0].set("r1")  # should not raise

    def test_thread_marshal_receives_event(self):
        app = _MockApp()
        state = observable({"title": "a"})
        seen = []
        stx.on(app, state.title, lambda e: seen.append(e.value))

        t = threading.Thread(target=lambda: state.title.set("b"))
        t.start()
        t.join()

        assert seen == ["b"]
        fn, args = app._call_from_thread_log[0]
        assert args[0].node is state.title


class TestReaction:
    def test_skips_when_not_running(self):
        app = _MockApp(is_running=False)
        state = observable({"status": 1})
        effects = []
        stx.reaction(app, lambda: state.status.get(), lambda v: effects.append(v))
        state.status.set(2)
        assert effects == []

    def test_skips_during_pause(self):
        app = _MockApp()
        state = observable({"status": 1})
        effects = []
        stx.reaction(app, lambda: state.status.get(), lambda v: effects.append(v))
        with stx.pause(app):
            state.status.set(2)
        assert effects == []

    def test_fires_when_safe(self):
        app = _MockApp()
        state = observable({"status": 1})
        effects = []
        stx.reaction(app, lambda: state.status.get(), lambda v: effects.append(v))
        state.status.set(2)
        assert effects == [2]

    def test_catches_nomatch(self):
        """NoMatches from widget queries are silently swallowed."""
        app = _MockApp()
        state = observable({"status": 1})

        def _raise_nomatch(v):
            raise NoMatches("StatusFooter")

        # Should not raise
        r = stx.reaction(app, lambda: state.status.get(), _raise_nomatch)
        state.status.set(2)
        r.dispose()

    def test_propagates_real_errors(self):
        """Non-NoMatches exceptions propagate normally."""
        app = _MockApp()
        state = observable({"status": 1})

        def _raise_value_error(v):
            raise ValueError("boom")

        r = stx.reaction(app, lambda: state.status.get(), _raise_value_error)
        with pytest.raises(ValueError, match="boom"):
            state.status.set(2)
        r.dispose()

    def test_thread_marshal(self):
        """Triggers from background thread use call_from_thread."""
        app = _MockApp()
        state = observable({"status": 1})
        effects = []
        stx.reaction(app, lambda: state.status.get(), lambda v: effects.append(v))

        # Trigger from a different thread
        def _bg():
            state.status.set(2)

        t = threading.Thread(target=_bg)
        t.start()
        t.join()

        assert effects == [2]
        # Verify call_from_thread was used (at least once)
        assert len(app._call_from_thread_log) >= 1


class TestAutorun:
    def test_skips_during_pause(self):
        app = _MockApp()
        state = observable({"status": 1})
        log = []

        stx.autorun(app, lambda: log.append(state.status.get()))
        # autorun fires immediately on setup
        assert log == [1]

        with stx.pause(app):
            state.status.set(2)
        # Skipped during pause
        assert log == [1]

    def test_catches_nomatch(self):
        """NoMatches from widget queries are silently swallowed."""
        app = _MockApp()
        state = observable({"status": 1})
        call_count = [0]

        def _fn():
            call_count[0] += 1
            state.status.get()  # track dependency
            if call_count[0] > 1:
                raise NoMatches("Widget")

        # Initial run succeeds (call_count becomes 1)
        stx.autorun(app, _fn)
        assert call_count[0] == 1

        # Second run raises NoMatches — silently caught
        state.status.set(2)
        assert call_count[0] == 2


class TestPause:
    def test_pause_restores_on_exception(self):
        app = _MockApp()
        assert stx.is_safe(app)

        with pytest.raises(RuntimeError):
            with stx.pause(app):
                assert not stx.is_safe(app)
                raise RuntimeError("oops")

        # Restored despite exception
        assert stx.is_safe(app)

    def test_multiple_apps_independent(self):
        """Pausing one app does not affect another."""
        app_a = _MockApp()
        app_b = _MockApp()
        with stx.pause(app_a):
            assert not stx.is_safe(app_a)
            assert stx.is_safe(app_b)
