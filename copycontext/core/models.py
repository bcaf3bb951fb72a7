# copycontext/core/models.py
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Set

HISTORY_LIMIT = 10 # Activation history entries kept per root

@dataclass(frozen=True)
class Entry:
    """A single scanned path, relative to the project root with forward slashes."""
    path: str
    is_dir: bool

@dataclass
class TreeNode:
    """Node of the structure tree. Children are kept as an ordered map (list + name index)."""
    name: str
    is_dir: bool
    path: str = "" # Root-relative path, '' for the root
    children: List['TreeNode'] = field(default_factory=list)
    _index: Dict[str, 'TreeNode'] = field(default_factory=dict, repr=False, compare=False)

    def get_child(self, name: str) -> Optional['TreeNode']:
        return self._index.get(name)

    def add_child(self, node: 'TreeNode') -> 'TreeNode':
        existing = self._index.get(node.name)
        if existing is not None:
            return existing
        self.children.append(node)
        self._index[node.name] = node
        return node

    def sort_children(self) -> None:
        self.children.sort(key=lambda n: (not n.is_dir, n.name))

@dataclass
class CollectedFile:
    """A candidate file whose content was read successfully."""
    path: str
    content: str
    language_tag: str = ""
    line_count: int = 0

@dataclass
class OpenDocument:
    """Host metadata for a document open in the editor."""
    path: str # Absolute or root-relative path as reported by the host
    language_id: Optional[str] = None
    is_active: bool = False
    is_dirty: bool = False # Has unsaved changes

@dataclass
class OutputSegment:
    """One unit of output text. Required segments may be sliced, optional ones are all-or-nothing."""
    text: str
    required: bool = False
    label: Optional[str] = None

@dataclass
class ComposeResult:
    text: str
    truncated: bool = False
    truncated_labels: List[str] = field(default_factory=list)
    included_labels: List[str] = field(default_factory=list)

@dataclass
class CandidateSelection:
    """Ranked content candidates plus the paths the structure tree should expand towards."""
    files: List[str] = field(default_factory=list)
    highlight_paths: Set[str] = field(default_factory=set)

@dataclass
class PinResult:
    path: str
    is_dir: bool
    pinned: bool # True if the path is pinned after the toggle
    count: int # Pinned files + pinned directories after the toggle

@dataclass
class WorkspaceTrackingState:
    """Per-root tracking state. Only the manual selections are persisted."""
    history: Deque[str] = field(default_factory=lambda: deque(maxlen=HISTORY_LIMIT))
    manual_files: Set[str] = field(default_factory=set)
    manual_directories: Dict[str, List[str]] = field(default_factory=dict) # Dir -> files captured at pin time

    def tracked_paths(self) -> List[str]:
        """All pinned files, pinned directories and their captured files."""
        paths: List[str] = list(self.manual_files)
        for dir_path, files in self.manual_directories.items():
            paths.append(dir_path)
            paths.extend(files)
        return paths

    @property
    def pin_count(self) -> int:
        return len(self.manual_files) + len(self.manual_directories)

@dataclass
class SnapshotResult:
    """Outcome of a snapshot build."""
    final_text: str
    truncated: bool
    truncated_labels: List[str]
    included_labels: List[str]
    total_candidate_count: int
    skipped_entries: List[str] # "path: reason"
    effective_limit: Optional[int]
    root_name: str = ""
    token_count: int = 0
