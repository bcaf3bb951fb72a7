# copycontext/core/tracker.py
"""
Relevance tracking: activation history and manual pins per project root,
and the heuristic that ranks which files go into a snapshot.
"""
import threading
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

from loguru import logger

from ..config.schema import AppConfig
from ..services.storage import StateStore, root_key
from .errors import CopyContextError
from .fs_scanner import DIRECTORY_CAPTURE_LIMIT
from .host import WorkspaceHost, build_ignore_filter, relative_to_root
from .ignore_filter import escapes_root, normalize_path
from .models import CandidateSelection, PinResult, WorkspaceTrackingState

DYNAMIC_SLOTS = 3 # Non-pinned candidates (active + history)
MANUAL_FILES_KEY = "manualFiles"
MANUAL_DIRECTORIES_KEY = "manualDirectories"

def _clean_paths(raw) -> List[str]:
    if not isinstance(raw, (list, tuple)):
        return []
    cleaned = []
    for item in raw:
        if isinstance(item, str):
            path = normalize_path(item)
            if path and not escapes_root(path) and path not in cleaned:
                cleaned.append(path)
    return cleaned

def load_manual_state(store: StateStore, root: Path) -> Tuple[Set[str], Dict[str, List[str]]]:
    """Loads pinned files and directories, tolerating missing or malformed data."""
    try:
        raw_files = store.load_small(root, MANUAL_FILES_KEY, [])
        raw_dirs = store.load_small(root, MANUAL_DIRECTORIES_KEY, {})
    except Exception as e:
        logger.warning(f"Could not load pinned items for {root}: {e}. Starting empty.")
        return set(), {}

    files = set(_clean_paths(raw_files))
    dirs: Dict[str, List[str]] = {}
    if isinstance(raw_dirs, dict):
        for dir_path, captured in raw_dirs.items():
            key = normalize_path(dir_path) if isinstance(dir_path, str) else ""
            if key and not escapes_root(key):
                dirs[key] = _clean_paths(captured)
    elif raw_dirs:
        logger.warning(f"Ignoring malformed '{MANUAL_DIRECTORIES_KEY}' entry for {root}.")
    return files, dirs

def select_candidates(state: WorkspaceTrackingState, active_path: Optional[str],
                      dynamic_slots: int = DYNAMIC_SLOTS) -> CandidateSelection:
    """
    Ranks content candidates. Order of priority:
      1. pinned files
      2. files captured under pinned directories (the directory itself is highlighted only)
      3. the active document
      4. history ranked by frequency, then recency, until `dynamic_slots` non-pinned files
      5. history newest-first as a fallback
    """
    selection = CandidateSelection()
    seen: Set[str] = set()

    def add(path: str, highlight: bool = True) -> bool:
        if not path or path in seen:
            return False
        seen.add(path)
        selection.files.append(path)
        if highlight:
            selection.highlight_paths.add(path)
        return True

    for path in sorted(state.manual_files):
        add(path)
    for dir_path in sorted(state.manual_directories):
        selection.highlight_paths.add(dir_path)
        for path in state.manual_directories[dir_path][:DIRECTORY_CAPTURE_LIMIT]:
            add(path)
    pinned_count = len(selection.files)

    active = normalize_path(active_path) if active_path else ""
    if escapes_root(active):
        logger.debug(f"Active path {active_path} is outside the root; not selecting it.")
        active = ""
    if active:
        add(active)

    def dynamic_count() -> int:
        return len(selection.files) - pinned_count

    history = list(state.history)
    counts = Counter(history)
    last_index = {path: i for i, path in enumerate(history)}
    ranked = sorted(
        (p for p in counts if p != active),
        key=lambda p: (-counts[p], -last_index[p]),
    )
    for path in ranked:
        if dynamic_count() >= dynamic_slots:
            break
        add(path, highlight=False)

    for path in reversed(history):
        if dynamic_count() >= dynamic_slots:
            break
        if path != active:
            add(path, highlight=False)

    logger.debug(f"Selected {len(selection.files)} candidates ({pinned_count} pinned).")
    return selection

class TrackingRegistry:
    """Maps project roots to their tracking state, loading pins from the store on first access."""

    def __init__(self, store: StateStore):
        self.store = store
        self._states: Dict[str, WorkspaceTrackingState] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def get(self, root: Path) -> WorkspaceTrackingState:
        key = root_key(root)
        with self._guard:
            state = self._states.get(key)
            if state is None:
                files, dirs = load_manual_state(self.store, root)
                state = WorkspaceTrackingState(manual_files=files, manual_directories=dirs)
                self._states[key] = state
                logger.debug(f"Created tracking state for {key}: {len(files)} files, {len(dirs)} directories pinned.")
            return state

    def lock_for(self, root: Path) -> threading.Lock:
        key = root_key(root)
        with self._guard:
            return self._locks.setdefault(key, threading.Lock())

    def persist(self, root: Path, state: WorkspaceTrackingState) -> None:
        self.store.persist_small(root, MANUAL_FILES_KEY, sorted(state.manual_files))
        self.store.persist_small(root, MANUAL_DIRECTORIES_KEY,
                                 {d: list(files) for d, files in sorted(state.manual_directories.items())})

class RelevanceTracker:
    """Records activations and pin toggles, and selects snapshot candidates."""

    def __init__(self, registry: TrackingRegistry, host: WorkspaceHost, config: Optional[AppConfig] = None):
        self.registry = registry
        self.host = host
        self.config = config or AppConfig()

    def record_activation(self, root: Path, path: Optional[str], suppress: bool = False) -> bool:
        """Appends an activated document to the root's history. Returns False when nothing was recorded."""
        if suppress:
            return False
        rel = relative_to_root(root, path) if path else None
        if not rel:
            return False
        self.registry.get(root).history.append(rel)
        logger.trace(f"Recorded activation of '{rel}'")
        return True

    def select(self, root: Path, active_path: Optional[str]) -> CandidateSelection:
        return select_candidates(self.registry.get(root), active_path)

    def _capture_directory(self, root: Path, rel_dir: str) -> List[str]:
        try:
            ignore_filter = build_ignore_filter(self.host, root, self.config.extra_ignore_globs, self.config.ignore_file)
            return self.host.enumerate_files(root, rel_dir, DIRECTORY_CAPTURE_LIMIT, ignore_filter)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not enumerate files under '{rel_dir}': {e}. Pinning it with no files.")
            return []

    def toggle_pin(self, root: Path, path: str, is_dir: Optional[bool] = None) -> PinResult:
        """Pins `path` if it is not pinned, unpins it otherwise, then persists."""
        rel = relative_to_root(root, path)
        if not rel:
            raise CopyContextError(f"Path is not inside the project root: {path}")
        if is_dir is None:
            is_dir = (Path(root) / rel).is_dir()

        with self.registry.lock_for(root):
            state = self.registry.get(root)
            if is_dir:
                if rel in state.manual_directories:
                    del state.manual_directories[rel]
                    pinned = False
                else:
                    state.manual_directories[rel] = self._capture_directory(root, rel)
                    pinned = True
            else:
                if rel in state.manual_files:
                    state.manual_files.discard(rel)
                    pinned = False
                else:
                    state.manual_files.add(rel)
                    pinned = True
            self.registry.persist(root, state)
            result = PinResult(path=rel, is_dir=is_dir, pinned=pinned, count=state.pin_count)

        logger.info(f"{'Pinned' if pinned else 'Unpinned'} {'directory' if is_dir else 'file'} '{rel}' ({result.count} tracked)")
        return result

    def clear_pins(self, root: Path) -> int:
        """Removes every pin for the root. Returns how many were removed."""
        with self.registry.lock_for(root):
            state = self.registry.get(root)
            removed = state.pin_count
            state.manual_files.clear()
            state.manual_directories.clear()
            self.registry.persist(root, state)
        logger.info(f"Cleared {removed} pinned items for {root_key(root)}")
        return removed

    def tracked_items(self, root: Path) -> Tuple[List[str], Dict[str, List[str]]]:
        state = self.registry.get(root)
        return sorted(state.manual_files), {d: list(state.manual_directories[d]) for d in sorted(state.manual_directories)}
