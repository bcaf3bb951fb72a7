# copycontext/core/snapshot.py
"""
Snapshot assembly: ranks candidates, renders the structure tree, reads file
contents and fits everything into the character budget.
"""
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from loguru import logger

from ..config.loader import get_config
from ..config.schema import AppConfig
from .compositor import compose
from .errors import ContentReadError, NoWorkspaceError
from .host import WorkspaceHost, build_ignore_filter, relative_to_root
from .languages import count_lines, language_tag
from .models import CollectedFile, OpenDocument, OutputSegment, SnapshotResult
from .token_counter import count_tokens
from .tracker import RelevanceTracker
from .tree_builder import build_tree, expand_set_for, segment_count

def apply_file_cap(candidates: List[str], max_files: Optional[int]) -> List[str]:
    if max_files is None:
        return list(candidates)
    if max_files <= 0:
        return []
    return list(candidates[:max_files])

def code_fence(content: str) -> str:
    """A backtick fence longer than any backtick run inside `content`."""
    longest = run = 0
    for ch in content:
        run = run + 1 if ch == "`" else 0
        longest = max(longest, run)
    return "`" * max(3, longest + 1)

def structure_heading(mode: str, depth: int) -> str:
    if mode == "full":
        return f"## Structure (full, depth {depth})"
    return "## Structure (smart, tracked paths expanded)"

def format_file_section(collected: CollectedFile) -> str:
    fence = code_fence(collected.content)
    body = collected.content if collected.content.endswith("\n") or not collected.content else collected.content + "\n"
    return (f"### `{collected.path}` ({collected.line_count} lines)\n\n"
            f"{fence}{collected.language_tag}\n{body}{fence}\n\n")

def format_skipped_section(skipped: List[str]) -> str:
    return "## Skipped Files\n\n" + "".join(f"- {entry}\n" for entry in skipped)

class SnapshotAssembler:
    """Builds a bounded project snapshot for one root."""

    def __init__(self, host: WorkspaceHost, tracker: RelevanceTracker, config: Optional[AppConfig] = None):
        self.host = host
        self.tracker = tracker
        self._config = config

    @property
    def config(self) -> AppConfig:
        return self._config or get_config()

    def _open_document_index(self, root: Path) -> Tuple[Dict[str, OpenDocument], Optional[str]]:
        index: Dict[str, OpenDocument] = {}
        active: Optional[str] = None
        for doc in self.host.list_open_documents():
            rel = relative_to_root(root, doc.path)
            if not rel:
                continue
            index[rel] = doc
            if doc.is_active and active is None:
                active = rel
        return index, active

    def _read_candidate(self, root: Path, rel: str, doc: Optional[OpenDocument]) -> Tuple[Optional[CollectedFile], Optional[str]]:
        path = root / rel
        try:
            content = self.host.read_file_content(path, record_activation=False)
        except ContentReadError as primary:
            try:
                content = self.host.read_unsaved_content(path)
                logger.info(f"Using unsaved content for '{rel}' ({primary.reason})")
            except ContentReadError as fallback:
                reason = f"{primary.reason}; unsaved: {fallback.reason}"
                logger.warning(f"Skipping '{rel}': {reason}")
                return None, reason
        collected = CollectedFile(
            path=rel,
            content=content,
            language_tag=language_tag(rel, doc.language_id if doc else None),
            line_count=count_lines(content),
        )
        return collected, None

    def build(self, root: Optional[Path], active_path: Optional[str] = None) -> SnapshotResult:
        """
        Builds the snapshot document for `root`.

        `active_path` overrides the host's active document. Raises NoWorkspaceError
        when there is no usable project root.
        """
        if root is None:
            raise NoWorkspaceError("No project folder is open.")
        root = Path(root).resolve()
        if not root.is_dir():
            raise NoWorkspaceError(f"Project root is not a directory: {root}")

        config = self.config
        root_name = root.name or str(root)
        logger.info(f"Building snapshot for {root} (mode={config.structure_mode}, max_chars={config.max_chars})")

        docs, host_active = self._open_document_index(root)
        active = relative_to_root(root, active_path) if active_path else host_active
        selection = self.tracker.select(root, active)

        # Structure
        ignore_filter = build_ignore_filter(self.host, root, config.extra_ignore_globs, config.ignore_file)
        tracked = selection.highlight_paths
        depth = max([config.tree_depth] + [segment_count(p) for p in tracked])
        entries = ignore_filter.filter_entries(self.host.list_raw_entries(root, depth, ignore_filter))
        tree_text = build_tree(entries, root_name, config.structure_mode, expand_set_for(tracked))

        # Contents
        candidates = apply_file_cap(selection.files, config.max_files)
        collected: List[CollectedFile] = []
        skipped: List[str] = []
        for rel in candidates:
            item, reason = self._read_candidate(root, rel, docs.get(rel))
            if item is not None:
                collected.append(item)
            else:
                skipped.append(f"{rel}: {reason}")

        header = (f"# Project Snapshot: {root_name}\n\n"
                  f"{structure_heading(config.structure_mode, depth)}\n\n"
                  f"```text\n{tree_text}\n```\n\n"
                  f"## Files (`{len(collected)}`)\n\n")
        if not collected:
            header += "_No files to include._\n\n"
        segments = [OutputSegment(text=header, required=True)]
        segments.extend(OutputSegment(text=format_file_section(c), label=c.path) for c in collected)
        if skipped:
            segments.append(OutputSegment(text=format_skipped_section(skipped), required=True))

        limit = config.max_chars if config.max_chars and config.max_chars > 0 else None
        composed = compose(segments, limit)
        result = SnapshotResult(
            final_text=composed.text,
            truncated=composed.truncated,
            truncated_labels=composed.truncated_labels,
            included_labels=composed.included_labels,
            total_candidate_count=len(selection.files),
            skipped_entries=skipped,
            effective_limit=limit,
            root_name=root_name,
            token_count=count_tokens(composed.text),
        )
        logger.info(f"Snapshot built: {len(result.included_labels)} files included, "
                    f"{len(result.truncated_labels)} truncated, {len(skipped)} skipped, "
                    f"{len(result.final_text)} chars (~{result.token_count} tokens).")
        return result
