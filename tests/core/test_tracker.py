# tests/core/test_tracker.py
import threading
import time
from collections import deque

import pytest

from copycontext.core.errors import CopyContextError
from copycontext.core.models import HISTORY_LIMIT, WorkspaceTrackingState
from copycontext.core.tracker import (
    MANUAL_DIRECTORIES_KEY, MANUAL_FILES_KEY, RelevanceTracker, TrackingRegistry, load_manual_state,
    select_candidates,
)
from copycontext.services.storage import MemoryStateStore

def make_state(history=(), files=(), dirs=None):
    state = WorkspaceTrackingState(manual_files=set(files), manual_directories=dict(dirs or {}))
    state.history.extend(history)
    return state

# --- select_candidates ---

def test_pins_with_active_pin_and_empty_history():
    state = make_state(files=["a.py", "b.py"])
    selection = select_candidates(state, "a.py")
    assert selection.files == ["a.py", "b.py"]
    assert {"a.py", "b.py"} <= selection.highlight_paths

def test_active_then_frequency_then_recency():
    state = make_state(history=["x", "x", "y"])
    selection = select_candidates(state, "z")
    assert selection.files == ["z", "x", "y"]
    assert selection.highlight_paths == {"z"}

def test_frequency_ties_broken_by_most_recent():
    state = make_state(history=["a", "b", "c", "d"])
    assert select_candidates(state, None).files == ["d", "c", "b"]

def test_active_excluded_from_ranking():
    state = make_state(history=["a", "a", "a", "b", "c"])
    assert select_candidates(state, "a").files == ["a", "c", "b"]

def test_dynamic_slots_do_not_count_pins():
    state = make_state(history=["h1", "h2", "h3", "h4"], files=["p1", "p2"])
    selection = select_candidates(state, "act")
    assert selection.files == ["p1", "p2", "act", "h4", "h3"]
    assert "h4" not in selection.highlight_paths

def test_pinned_directory_files_included_and_directory_highlighted():
    state = make_state(files=["a.py"], dirs={"lib": ["lib/x.py", "a.py", "lib/y.py"]})
    selection = select_candidates(state, None)
    assert selection.files == ["a.py", "lib/x.py", "lib/y.py"]
    assert "lib" in selection.highlight_paths
    assert "lib" not in selection.files

def test_history_already_pinned_is_not_duplicated():
    state = make_state(history=["p", "p", "q"], files=["p"])
    assert select_candidates(state, None).files == ["p", "q"]

def test_fresh_session_without_active_is_empty():
    assert select_candidates(make_state(), None).files == []

def test_active_path_is_normalized():
    assert select_candidates(make_state(), ".\\src\\a.py").files == ["src/a.py"]

def test_active_path_with_parent_segments_matches_pin():
    state = make_state(files=["README.md"])
    assert select_candidates(state, "src/../README.md").files == ["README.md"]

def test_active_path_outside_root_is_dropped():
    assert select_candidates(make_state(), "src/../../secret.txt").files == []

# --- history ---

def test_history_is_bounded_fifo(tracker, project):
    for i in range(HISTORY_LIMIT + 5):
        tracker.record_activation(project, f"file{i}.py")
    history = list(tracker.registry.get(project).history)
    assert len(history) == HISTORY_LIMIT
    assert history[0] == "file5.py"
    assert history[-1] == f"file{HISTORY_LIMIT + 4}.py"

def test_suppressed_and_outside_activations_not_recorded(tracker, project, tmp_path):
    assert tracker.record_activation(project, "src/app/main.py", suppress=True) is False
    assert tracker.record_activation(project, str(tmp_path / "elsewhere.py")) is False
    assert tracker.record_activation(project, None) is False
    assert tracker.record_activation(project, str(project / "src" / "app" / "main.py")) is True
    assert list(tracker.registry.get(project).history) == ["src/app/main.py"]

# --- pins ---

def test_toggle_file_pin_persists(tracker, store, project):
    result = tracker.toggle_pin(project, "README.md")
    assert result.pinned and not result.is_dir and result.count == 1
    assert store.load_small(project, MANUAL_FILES_KEY) == ["README.md"]

    result = tracker.toggle_pin(project, str(project / "README.md"))
    assert not result.pinned and result.count == 0
    assert store.load_small(project, MANUAL_FILES_KEY) == []

def test_pin_directory_captures_files_respecting_ignores(tracker, store, project):
    (project / "src" / "app" / "trace.log").write_text("x")
    result = tracker.toggle_pin(project, "src")
    assert result.pinned and result.is_dir
    captured = store.load_small(project, MANUAL_DIRECTORIES_KEY)["src"]
    assert sorted(captured) == ["src/app/deep/nested/core.py", "src/app/main.py", "src/app/util.py"]

def test_unpin_directory_does_not_resurrect_files(tracker, project):
    tracker.toggle_pin(project, "src/app/main.py")
    tracker.toggle_pin(project, "src/app/main.py")
    tracker.toggle_pin(project, "src")
    result = tracker.toggle_pin(project, "src")
    assert not result.pinned
    state = tracker.registry.get(project)
    assert state.manual_directories == {}
    assert "src/app/main.py" not in state.manual_files

def test_directory_capture_is_capped(tracker, project, mocker):
    mocker.patch("copycontext.core.tracker.DIRECTORY_CAPTURE_LIMIT", 2)
    tracker.toggle_pin(project, "src")
    assert len(tracker.registry.get(project).manual_directories["src"]) == 2

def test_directory_enumeration_failure_pins_empty(tracker, host, project, mocker):
    mocker.patch.object(host, "enumerate_files", side_effect=PermissionError("denied"))
    result = tracker.toggle_pin(project, "docs", is_dir=True)
    assert result.pinned
    assert tracker.registry.get(project).manual_directories == {"docs": []}

def test_pin_outside_root_raises(tracker, project, tmp_path):
    with pytest.raises(CopyContextError):
        tracker.toggle_pin(project, str(tmp_path / "other.py"))

def test_pin_with_parent_segments_is_canonical_or_rejected(tracker, store, project):
    (project.parent / "secret.txt").write_text("top secret")
    with pytest.raises(CopyContextError):
        tracker.toggle_pin(project, "src/../../secret.txt", is_dir=False)
    result = tracker.toggle_pin(project, "src/../README.md")
    assert result.path == "README.md" and result.pinned
    assert store.load_small(project, MANUAL_FILES_KEY) == ["README.md"]

def test_clear_pins(tracker, store, project):
    tracker.toggle_pin(project, "README.md")
    tracker.toggle_pin(project, "docs")
    assert tracker.clear_pins(project) == 2
    assert store.load_small(project, MANUAL_FILES_KEY) == []
    assert store.load_small(project, MANUAL_DIRECTORIES_KEY) == {}

def test_tracked_items_sorted(tracker, project):
    tracker.toggle_pin(project, "setup.cfg")
    tracker.toggle_pin(project, "README.md")
    tracker.toggle_pin(project, "docs")
    files, dirs = tracker.tracked_items(project)
    assert files == ["README.md", "setup.cfg"]
    assert dirs == {"docs": ["docs/guide.md"]}

# --- persistence ---

def test_registry_loads_and_normalizes_stored_pins(store, project):
    store.persist_small(project, MANUAL_FILES_KEY, ["src\\a.py", "", "./b.py", 7])
    store.persist_small(project, MANUAL_DIRECTORIES_KEY, {"lib\\": ["lib\\x.py", ""], "": ["y"]})
    state = TrackingRegistry(store).get(project)
    assert state.manual_files == {"src/a.py", "b.py"}
    assert state.manual_directories == {"lib": ["lib/x.py"]}

def test_stored_pins_escaping_root_are_dropped(store, project):
    store.persist_small(project, MANUAL_FILES_KEY, ["../secret.txt", "src/../../x.py", "src/../README.md"])
    store.persist_small(project, MANUAL_DIRECTORIES_KEY, {"..": ["../a.py"], "docs": ["docs/../../b.md", "docs/guide.md"]})
    files, dirs = load_manual_state(store, project)
    assert files == {"README.md"}
    assert dirs == {"docs": ["docs/guide.md"]}

@pytest.mark.parametrize("files, dirs", [
    ("not a list", ["not", "a", "dict"]),
    (None, None),
    ({"a": 1}, 42),
])
def test_malformed_stored_state_loads_empty(store, project, files, dirs):
    store.persist_small(project, MANUAL_FILES_KEY, files)
    store.persist_small(project, MANUAL_DIRECTORIES_KEY, dirs)
    assert load_manual_state(store, project) == (set(), {})

def test_registry_is_per_root_and_lazy(store, tmp_path):
    registry = TrackingRegistry(store)
    a, b = tmp_path / "a", tmp_path / "b"
    a.mkdir(); b.mkdir()
    registry.get(a).history.append("x.py")
    assert list(registry.get(b).history) == []
    assert registry.get(a) is registry.get(a)
    assert registry.lock_for(a) is registry.lock_for(a)
    assert isinstance(registry.get(a).history, deque)

# --- concurrency ---

class SlowStore(MemoryStateStore):
    """Records how many writes are in flight at once."""

    def __init__(self):
        super().__init__()
        self._counter_lock = threading.Lock()
        self.active = 0
        self.max_active = 0

    def persist_small(self, root, key, value):
        with self._counter_lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(0.005)
        super().persist_small(root, key, value)
        with self._counter_lock:
            self.active -= 1

def test_concurrent_pin_toggles_are_serialized(host, config, project):
    store = SlowStore()
    tracker = RelevanceTracker(TrackingRegistry(store), host, config)
    names = [f"f{i}.py" for i in range(8)]
    start = threading.Barrier(len(names))

    def toggle(name):
        start.wait()
        tracker.toggle_pin(project, name, is_dir=False)

    threads = [threading.Thread(target=toggle, args=(name,)) for name in names]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert tracker.registry.get(project).manual_files == set(names)
    assert store.load_small(project, MANUAL_FILES_KEY) == sorted(names)
    assert store.max_active == 1
