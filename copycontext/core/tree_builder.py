# copycontext/core/tree_builder.py
"""Builds and renders the project structure diagram."""
from typing import Iterable, List, Literal, Optional, Set

from loguru import logger

from .ignore_filter import normalize_path
from .models import Entry, TreeNode

StructureMode = Literal["full", "smart"]

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE = "│   "
SPACE = "    "

def expand_set_for(paths: Iterable[str]) -> Set[str]:
    """Every proper prefix directory of each path ('a/b/c' -> {'a', 'a/b'})."""
    prefixes: Set[str] = set()
    for raw in paths:
        parts = [p for p in normalize_path(raw).split("/") if p]
        for i in range(1, len(parts)):
            prefixes.add("/".join(parts[:i]))
    return prefixes

def segment_count(path: str) -> int:
    return len([p for p in normalize_path(path).split("/") if p])

class TreeBuilder:
    """Turns flat entries into a sorted TreeNode hierarchy and renders it."""

    def __init__(self, root_label: str):
        self.root = TreeNode(name=root_label, is_dir=True, path="")

    def insert(self, path: str, is_dir: bool) -> Optional[TreeNode]:
        parts = [p for p in normalize_path(path).split("/") if p]
        if not parts:
            return None
        node = self.root
        for i, part in enumerate(parts):
            is_last = i == len(parts) - 1
            child = node.get_child(part)
            if child is None:
                child = node.add_child(TreeNode(
                    name=part,
                    is_dir=is_dir if is_last else True,
                    path="/".join(parts[:i + 1]),
                ))
            elif (not is_last or is_dir) and not child.is_dir:
                # Observed as a directory after being seen as a file leaf
                child.is_dir = True
            node = child
        return node

    def insert_all(self, entries: Iterable[Entry]) -> 'TreeBuilder':
        for entry in entries:
            self.insert(entry.path, entry.is_dir)
        return self

    def sort(self) -> None:
        stack = [self.root]
        while stack:
            node = stack.pop()
            node.sort_children()
            stack.extend(c for c in node.children if c.children)

    def render(self, mode: StructureMode = "full", expand_set: Optional[Set[str]] = None) -> str:
        self.sort()
        expand = expand_set or set()
        lines: List[str] = [self.root.name]
        self._render_children(self.root, "", mode, expand, lines)
        return "\n".join(lines)

    def _should_expand(self, node: TreeNode, mode: StructureMode, expand: Set[str]) -> bool:
        if not node.children:
            return False
        if mode == "full":
            return True
        return node.path in expand

    def _render_children(self, node: TreeNode, prefix: str, mode: StructureMode,
                         expand: Set[str], lines: List[str]) -> None:
        count = len(node.children)
        for i, child in enumerate(node.children):
            is_last = i == count - 1
            lines.append(f"{prefix}{LAST_BRANCH if is_last else BRANCH}{child.name}")
            if child.is_dir and self._should_expand(child, mode, expand):
                self._render_children(child, prefix + (SPACE if is_last else PIPE), mode, expand, lines)

def build_tree(entries: Iterable[Entry], root_label: str, mode: StructureMode = "full",
               expand_set: Optional[Set[str]] = None) -> str:
    """Builds the structure diagram for `entries` under `root_label`."""
    builder = TreeBuilder(root_label).insert_all(entries)
    text = builder.render(mode, expand_set)
    logger.debug(f"Rendered {mode} tree with {len(text.splitlines()) - 1} descendant lines.")
    return text
