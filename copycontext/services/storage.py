# copycontext/services/storage.py
import hashlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from loguru import logger

from ..config.paths import get_user_state_dir

class StateStore(Protocol):
    """Small durable key-value store scoped per project root."""
    def persist_small(self, root: Path, key: str, value: Any) -> None: ...
    def load_small(self, root: Path, key: str, default: Any = None) -> Any: ...

def root_key(root: Path) -> str:
    """Stable identity for a project root."""
    return str(Path(root).resolve())

class MemoryStateStore:
    """Process-local store, for embedding and tests."""

    def __init__(self):
        self._data: Dict[str, Dict[str, Any]] = {}

    def persist_small(self, root: Path, key: str, value: Any) -> None:
        self._data.setdefault(root_key(root), {})[key] = json.loads(json.dumps(value))

    def load_small(self, root: Path, key: str, default: Any = None) -> Any:
        return self._data.get(root_key(root), {}).get(key, default)

class JsonStateStore:
    """One JSON document per project root under the user state directory."""

    def __init__(self, state_dir: Optional[Path] = None):
        self.state_dir = Path(state_dir) if state_dir else get_user_state_dir()

    def _file_for(self, root: Path) -> Path:
        digest = hashlib.sha1(root_key(root).encode('utf-8')).hexdigest()[:16]
        return self.state_dir / f"{digest}.json"

    def _read(self, root: Path) -> Dict[str, Any]:
        state_file = self._file_for(root)
        if not state_file.exists():
            return {}
        try:
            with open(state_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to read stored state {state_file}: {e}. Using empty state.")
            return {}
        values = data.get("values") if isinstance(data, dict) else None
        return values if isinstance(values, dict) else {}

    def load_small(self, root: Path, key: str, default: Any = None) -> Any:
        return self._read(root).get(key, default)

    def persist_small(self, root: Path, key: str, value: Any) -> None:
        """Read-modify-write of the root's document, replaced atomically."""
        values = self._read(root)
        values[key] = value
        state_file = self._file_for(root)
        state_file.parent.mkdir(parents=True, exist_ok=True)
        temp_file_path: Optional[Path] = None
        try:
            with tempfile.NamedTemporaryFile(
                mode='w', encoding='utf-8', dir=state_file.parent,
                prefix=f".{state_file.name}_tmp", suffix=".json", delete=False
            ) as temp_f:
                temp_file_path = Path(temp_f.name)
                json.dump({"root": root_key(root), "values": values}, temp_f, indent=2)
                temp_f.flush()
                os.fsync(temp_f.fileno())
            os.replace(temp_file_path, state_file)
            temp_file_path = None
            logger.debug(f"Persisted '{key}' for {root_key(root)} to {state_file}")
        except (OSError, TypeError) as e:
            logger.error(f"Failed to persist '{key}' to {state_file}: {e}")
        finally:
            if temp_file_path and temp_file_path.exists():
                try: temp_file_path.unlink()
                except OSError as unlink_err: logger.error(f"Failed to remove temporary state file {temp_file_path}: {unlink_err}")
