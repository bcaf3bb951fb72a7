# copycontext/core/fs_scanner.py
import os
from pathlib import Path
from typing import List, Optional

from loguru import logger

from .ignore_filter import IgnoreFilter, normalize_path
from .models import Entry

DIRECTORY_CAPTURE_LIMIT = 200 # Max files captured when a directory is pinned

class WorkspaceScanner:
    """Depth-bounded scan of a project root producing flat, root-relative entries."""

    def __init__(self, root_path: Path, ignore_filter: Optional[IgnoreFilter] = None):
        self.root_path = Path(root_path).resolve()
        self.ignore_filter = ignore_filter or IgnoreFilter()
        logger.debug(f"Scanner initialized for {self.root_path}")

    def _relative(self, entry_path: Path) -> str:
        return normalize_path(entry_path.relative_to(self.root_path).as_posix())

    def _list_dir(self, dir_path: Path) -> List[os.DirEntry]:
        try:
            with os.scandir(dir_path) as it:
                return sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.warning(f"Could not scan directory contents {dir_path}: {e}")
            return []

    def _classify(self, entry: os.DirEntry) -> Optional[bool]:
        """Returns True for a directory, False for a file, None for anything skipped (symlinks, sockets)."""
        try:
            if entry.is_symlink():
                logger.trace(f"Ignoring symlink entry: {entry.name}")
                return None
            if entry.is_dir():
                return True
            if entry.is_file():
                return False
        except OSError as e:
            logger.warning(f"Could not stat entry {entry.path}: {e}. Skipping.")
        return None

    def scan(self, depth: int) -> List[Entry]:
        """
        Lists entries at most `depth` segments deep, parents before children.
        Ignored directories are not descended into.
        """
        if not self.root_path.is_dir():
            raise ValueError(f"Provided path is not a valid directory: {self.root_path}")
        logger.info(f"Scanning {self.root_path} (depth {depth})")
        entries: List[Entry] = []
        stack = [(self.root_path, 1)]
        while stack:
            dir_path, level = stack.pop()
            children = []
            for dir_entry in self._list_dir(dir_path):
                is_dir = self._classify(dir_entry)
                if is_dir is None:
                    continue
                rel = self._relative(Path(dir_entry.path))
                if self.ignore_filter.is_ignored(rel, is_dir):
                    continue
                entries.append(Entry(path=rel, is_dir=is_dir))
                if is_dir and level < depth:
                    children.append((Path(dir_entry.path), level + 1))
            stack.extend(reversed(children))
        logger.debug(f"Scan found {len(entries)} entries.")
        return entries

    def enumerate_files(self, rel_dir: str, cap: int = DIRECTORY_CAPTURE_LIMIT) -> List[str]:
        """Recursively collects up to `cap` file paths under `rel_dir` (unbounded depth)."""
        start = self.root_path / normalize_path(rel_dir) if normalize_path(rel_dir) else self.root_path
        if not start.is_dir():
            raise NotADirectoryError(f"Not a directory: {start}")
        files: List[str] = []
        stack = [start]
        while stack and len(files) < cap:
            dir_path = stack.pop()
            subdirs = []
            for dir_entry in self._list_dir(dir_path):
                is_dir = self._classify(dir_entry)
                if is_dir is None:
                    continue
                rel = self._relative(Path(dir_entry.path))
                if self.ignore_filter.is_ignored(rel, is_dir):
                    continue
                if is_dir:
                    subdirs.append(Path(dir_entry.path))
                else:
                    files.append(rel)
                    if len(files) >= cap:
                        logger.info(f"Directory capture for '{rel_dir}' reached the {cap} file limit.")
                        break
            stack.extend(reversed(subdirs))
        return files
