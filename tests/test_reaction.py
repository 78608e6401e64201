"""Tests for Reaction, autorun, and reaction."""

import pytest

from pathfx import autorun, computed, observable, reaction


class TestAutorun:
    def test_runs_now_and_on_change(self):
        state = observable({"count": 10})
        log = []
        autorun(lambda: log.append(state.count.get()))
        assert log == [10]
        state.count.set(20)
        assert log == [10, 20]

    def test_sibling_writes_ignored(self):
        state = observable({"user": {"name": "Ada", "age": 36}})
        log = []
        autorun(lambda: log.append(state.user.name.get()))
        state.user.age.set(37)
        assert log == ["Ada"]
        state.user.name.set("Bo")
        assert log == ["Ada", "Bo"]

    def test_container_iteration(self):
        state = observable({"users": [{"name": "Ada"}]})
        log = []
        autorun(lambda: log.append([u.name.get() for u in state.users]))

        state.users[1].set({"name": "Bo"})  # key added: shallow edge on users
        state.users[0].name.set("Cy")  # deep edge on users.0.name
        assert log == [["Ada"], ["Ada", "Bo"], ["Cy", "Bo"]]

    def test_len_ignores_nested_changes(self):
        state = observable({"todos": [{"done": False}]})
        sizes = []
        autorun(lambda: sizes.append(len(state.todos)))
        state.todos[0].done.set(True)
        assert sizes == [1]
        state.todos[1].set({"done": False})
        assert sizes == [1, 2]

    def test_dispose_stops(self):
        state = observable({"n": 1})
        log = []
        r = autorun(lambda: log.append(state.n.get()))
        r.dispose()
        state.n.set(2)
        assert log == [1]
        assert not r.active

    def test_self_triggering_runs_once_per_write(self):
        state = observable({"n": 0, "runs": 0})

        def bump():
            state.n.get()
            # Reads and writes the same node; must not loop.
            state.runs.set(state.runs.get() + 1)

        autorun(bump)
        assert state.runs.peek() == 1
        state.n.set(1)
        assert state.runs.peek() == 2

    def test_error_propagates_and_recovers(self):
        state = observable({"n": 1})
        log = []

        def check():
            value = state.n.get()
            if value < 0:
                raise ValueError("negative")
            log.append(value)

        autorun(check)
        with pytest.raises(ValueError, match="negative"):
            state.n.set(-1)
        state.n.set(2)
        assert log == [1, 2]

    def test_repr(self):
        def named():
            pass

        r = autorun(named)
        assert repr(r) == "Reaction(named, active)"
        r.dispose()
        assert repr(r) == "Reaction(named, disposed)"


class TestReaction:
    def test_no_initial_effect(self):
        state = observable({"mode": "a"})
        effects = []
        reaction(lambda: state.mode.get(), effects.append)
        assert effects == []
        state.mode.set("b")
        assert effects == ["b"]

    def test_fire_immediately(self):
        state = observable({"mode": "a"})
        effects = []
        reaction(lambda: state.mode.get(), effects.append, fire_immediately=True)
        assert effects == ["a"]

    def test_effect_only_on_result_change(self):
        state = observable({"n": 1})
        effects = []
        reaction(lambda: "even" if state.n.get() % 2 == 0 else "odd", effects.append)
        state.n.set(3)
        assert effects == []
        state.n.set(4)
        assert effects == ["even"]

    def test_results_compared_by_type(self):
        state = observable({"n": 1})
        effects = []
        reaction(lambda: state.n.get(), effects.append)
        state.n.set(1.0)
        assert effects == [1.0]

    def test_container_result_after_nested_write(self):
        state = observable({"a": {"b": 1}})
        effects = []
        reaction(lambda: state.a.get(), effects.append)
        state.a.b.set(2)
        assert effects == [{"b": 2}]

    def test_list_result_after_append(self):
        state = observable({"items": [1, 2]})
        effects = []
        reaction(lambda: state.items.get(), effects.append)
        state.items[2].set(3)
        state.items[0].delete()
        assert effects == [[1, 2, 3], [2, 3]]

    def test_over_computed(self):
        cart = observable({"prices": {"apple": 2, "pear": 3}})
        total = computed(lambda: sum(cart.prices.get().values()))
        effects = []
        reaction(lambda: total.get(), effects.append)
        cart.prices.apple.set(5)
        cart.prices.fig.set(1)
        assert effects == [8, 9]

    def test_dispose(self):
        state = observable({"n": 1})
        effects = []
        r = reaction(lambda: state.n.get(), effects.append)
        state.n.set(2)
        r.dispose()
        state.n.set(3)
        assert effects == [2]
