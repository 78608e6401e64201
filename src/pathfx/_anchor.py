"""Data anchor — plain Python structures that hold all reactive state.

Nodes, derived nodes and reactions are thin handles holding an _id. Every
piece of state they need (the value trees, the path registry, listener lists,
dependency edges) lives here, keyed by that id.
"""

import itertools

# Root state: root_id -> raw value tree / safe-mode flag
values: dict[int, object] = {}
safe_flags: dict[int, bool] = {}

# Path registry
node_ids: dict[tuple, int] = {}  # (root_id, path) -> node_id
node_paths: dict[int, tuple] = {}  # node_id -> (root_id, path)
handles: dict[int, object] = {}  # node_id -> Node handle
children: dict[int, list] = {}  # node_id -> materialized child node ids, in creation order

# Subscriptions
listeners: dict[int, list] = {}  # node_id -> [Listener]
observers: dict[int, dict] = {}  # node_id -> {derivation: shallow}

# Derivation state (computed roots + reactions)
derivations: dict[int, object] = {}  # root_id -> Computed
dependencies: dict[int, dict] = {}  # deriv_id -> {node_id: shallow}
dirty_flags: dict[int, bool] = {}
cached_values: dict[int, object] = {}
errors: dict[int, BaseException] = {}
derivation_fns: dict[int, object] = {}
setter_fns: dict[int, object] = {}
disposed: dict[int, bool] = {}
evaluating: set[int] = set()

_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)
