# copycontext/core/ignore_filter.py
import posixpath
from typing import Iterable, List, Optional

import pathspec
from loguru import logger

from .models import Entry

def normalize_path(raw: str) -> str:
    """Converts a host path to the canonical form: forward slashes, '.' and '..' collapsed, no outer slashes."""
    path = (raw or "").replace("\\", "/")
    if not path:
        return ""
    path = posixpath.normpath(path).strip("/")
    return "" if path == "." else path

def escapes_root(rel: str) -> bool:
    """True for a normalized relative path that climbs above its root."""
    return rel == ".." or rel.startswith("../")

def parse_ignore_lines(text: Optional[str]) -> List[str]:
    """Splits ignore-file content into rule lines, dropping blanks and comments."""
    if not text:
        return []
    lines = []
    for line in text.splitlines():
        stripped = line.rstrip()
        if not stripped.strip() or stripped.lstrip().startswith("#"):
            continue
        lines.append(stripped)
    return lines

class IgnoreFilter:
    """Gitignore-style filter over root-relative entries."""

    def __init__(self, patterns: Iterable[str] = ()):
        self.patterns = [p for p in patterns if p and p.strip()]
        try:
            self._spec = pathspec.GitIgnoreSpec.from_lines(self.patterns)
        except (ValueError, TypeError) as e:
            # A single bad pattern must not disable scanning
            logger.warning(f"Invalid ignore pattern set, ignoring all extra rules: {e}")
            self._spec = pathspec.GitIgnoreSpec.from_lines([])
        logger.debug(f"Ignore filter initialized with {len(self.patterns)} rules.")

    @classmethod
    def from_sources(cls, extra_globs: Iterable[str], ignore_text: Optional[str]) -> 'IgnoreFilter':
        """Extra globs first so that ignore-file negations can re-include paths."""
        return cls(list(extra_globs) + parse_ignore_lines(ignore_text))

    def is_ignored(self, path: str, is_dir: bool) -> bool:
        rel = normalize_path(path)
        if not rel:
            return False # The root itself is never ignored
        candidate = rel + "/" if is_dir else rel
        return self._spec.match_file(candidate)

    def filter_entries(self, entries: Iterable[Entry]) -> List[Entry]:
        """Returns the entries not matched by any rule, with normalized paths."""
        kept: List[Entry] = []
        ignored_dirs: List[str] = []
        for entry in entries:
            rel = normalize_path(entry.path)
            if not rel:
                continue
            if any(rel.startswith(d + "/") for d in ignored_dirs):
                continue
            if self.is_ignored(rel, entry.is_dir):
                logger.trace(f"Ignoring '{rel}'")
                if entry.is_dir:
                    ignored_dirs.append(rel)
                continue
            kept.append(Entry(path=rel, is_dir=entry.is_dir))
        return kept
