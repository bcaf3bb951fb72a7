# copycontext/core/host.py
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from loguru import logger

from .errors import ContentReadError
from .fs_scanner import DIRECTORY_CAPTURE_LIMIT, WorkspaceScanner
from .ignore_filter import IgnoreFilter, escapes_root, normalize_path
from .models import Entry, OpenDocument

class WorkspaceHost(Protocol):
    """Capabilities the snapshot core needs from its host (editor, CLI, tests)."""

    def list_raw_entries(self, root: Path, depth: int, ignore_filter: Optional[IgnoreFilter] = None) -> List[Entry]: ...
    def read_ignore_rules(self, root: Path, file_name: str) -> Optional[str]: ...
    def read_file_content(self, path: Path, record_activation: bool = False) -> str: ...
    def read_unsaved_content(self, path: Path) -> str: ...
    def list_open_documents(self) -> List[OpenDocument]: ...
    def enumerate_files(self, root: Path, rel_dir: str, cap: int, ignore_filter: Optional[IgnoreFilter] = None) -> List[str]: ...

def relative_to_root(root: Path, path: str) -> Optional[str]:
    """Maps an absolute or relative host path to a normalized root-relative path, None if outside the root."""
    if not path:
        return None
    root_resolved = Path(root).resolve()
    candidate = Path(path)
    if candidate.is_absolute():
        try:
            rel = candidate.resolve().relative_to(root_resolved).as_posix()
        except ValueError:
            return None
    else:
        rel = candidate.as_posix()
    rel = normalize_path(rel)
    if not rel or escapes_root(rel):
        return None
    try:
        # Symlinked components may still point outside the root
        (root_resolved / rel).resolve().relative_to(root_resolved)
    except ValueError:
        logger.warning(f"Path {path} resolves outside {root_resolved}; ignoring it")
        return None
    return rel

class FileSystemHost:
    """Host backed by the local file system with an in-memory overlay of unsaved buffers."""
    ENCODINGS = ('utf-8-sig', 'cp1252')

    def __init__(self, open_documents: Optional[Iterable[OpenDocument]] = None,
                 unsaved_buffers: Optional[Dict[str, str]] = None,
                 on_activate: Optional[Callable[[Path], None]] = None):
        # on_activate mirrors an editor firing "document activated" when a document is opened
        self.on_activate = on_activate
        self.open_documents: List[OpenDocument] = list(open_documents or [])
        self.unsaved_buffers: Dict[str, str] = dict(unsaved_buffers or {}) # Keyed by resolved path string

    def list_raw_entries(self, root: Path, depth: int, ignore_filter: Optional[IgnoreFilter] = None) -> List[Entry]:
        return WorkspaceScanner(root, ignore_filter).scan(depth)

    def read_ignore_rules(self, root: Path, file_name: str) -> Optional[str]:
        if not file_name:
            return None
        ignore_path = Path(root) / file_name
        try:
            return ignore_path.read_text(encoding='utf-8')
        except FileNotFoundError:
            logger.debug(f"No ignore file at {ignore_path}")
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read ignore file {ignore_path}: {e}. Continuing without it.")
            return None

    def read_file_content(self, path: Path, record_activation: bool = False) -> str:
        if record_activation and self.on_activate:
            self.on_activate(Path(path))
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise ContentReadError(str(path), e.strerror or str(e)) from e
        if b"\x00" in data:
            raise ContentReadError(str(path), "binary content")
        for enc in self.ENCODINGS:
            try:
                return data.decode(enc)
            except UnicodeDecodeError:
                continue
        raise ContentReadError(str(path), "undecodable text")

    def read_unsaved_content(self, path: Path) -> str:
        key = str(Path(path).resolve())
        if key not in self.unsaved_buffers:
            raise ContentReadError(str(path), "no unsaved buffer")
        return self.unsaved_buffers[key]

    def set_unsaved(self, path: Path, text: str) -> None:
        self.unsaved_buffers[str(Path(path).resolve())] = text

    def list_open_documents(self) -> List[OpenDocument]:
        return list(self.open_documents)

    def enumerate_files(self, root: Path, rel_dir: str, cap: int = DIRECTORY_CAPTURE_LIMIT,
                        ignore_filter: Optional[IgnoreFilter] = None) -> List[str]:
        return WorkspaceScanner(root, ignore_filter).enumerate_files(rel_dir, cap)

def build_ignore_filter(host: WorkspaceHost, root: Path, extra_globs: Iterable[str], ignore_file: str) -> IgnoreFilter:
    """Configured globs plus the root's ignore file, if any."""
    return IgnoreFilter.from_sources(extra_globs, host.read_ignore_rules(root, ignore_file))
