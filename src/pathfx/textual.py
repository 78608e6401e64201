"""Textual bridge for pathfx. Opt-in — requires the ``textual`` extra.

Node listeners, reactions and autoruns registered through this module only
touch widgets when the app can be queried:

- not while the app is stopped or inside pause(app),
- always on the thread that registered them (others go through
  app.call_from_thread),
- with NoMatches from a widget query logged and dropped.

_paused_apps is owned here; an app id is present exactly while a pause()
block for that app is open.
"""

import logging
import threading
from contextlib import contextmanager

from textual.css.query import NoMatches
from pathfx import autorun as _autorun, reaction as _reaction

logger = logging.getLogger("pathfx.textual")

# Module-owned pause state — keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded effects during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def _guard(app, fn):
    """Wrap fn to run only while app is safe, on the thread that created it.

    NoMatches from widget queries is dropped; other errors propagate.
    """
    _main = threading.get_ident()

    def _safe(*args):
        try:
            fn(*args)
        except NoMatches as exc:
            logger.debug("Skipped update, widget not mounted: %s", exc)

    def _guarded(*args):
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe, *args)
        else:
            _safe(*args)

    return _guarded


def on(app, node, listener, *, shallow=False):
    """node.on() whose listener safely updates Textual widgets.

    Returns the unsubscribe function.
    """
    return node.on(_guard(app, listener), shallow=shallow)


def reaction(app, data_fn, effect_fn, *, fire_immediately=False):
    """reaction() that safely bridges to Textual widgets."""
    return _reaction(data_fn, _guard(app, effect_fn), fire_immediately=fire_immediately)


def autorun(app, fn):
    """autorun() that safely bridges to Textual widgets."""
    return _autorun(_guard(app, fn))
