# tests/conftest.py
from pathlib import Path

import pytest

from copycontext.config.loader import reset_config_cache
from copycontext.config.schema import AppConfig
from copycontext.core.host import FileSystemHost
from copycontext.core.tracker import RelevanceTracker, TrackingRegistry
from copycontext.services.storage import MemoryStateStore

@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keeps config, logs and pin state out of the real user directory."""
    home = tmp_path / "_home"
    monkeypatch.setenv("COPYCONTEXT_HOME", str(home))
    for name in ("COPYCONTEXT_MAX_CHARS", "COPYCONTEXT_MAX_FILES", "COPYCONTEXT_STRUCTURE_MODE", "COPYCONTEXT_TREE_DEPTH"):
        monkeypatch.delenv(name, raising=False)
    reset_config_cache()
    yield home
    reset_config_cache()

def write_files(root: Path, files: dict) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")

@pytest.fixture
def project(tmp_path):
    """A small project tree on disk."""
    root = tmp_path / "demo"
    write_files(root, {
        "README.md": "# Demo\n",
        "setup.cfg": "[metadata]\nname = demo\n",
        "src/app/main.py": "print('hi')\n",
        "src/app/util.py": "def helper():\n    return 1\n",
        "src/app/deep/nested/core.py": "X = 1",
        "docs/guide.md": "guide",
        "build/output.txt": "generated",
        ".gitignore": "*.log\n",
        "debug.log": "noise",
    })
    return root

@pytest.fixture
def config():
    return AppConfig(max_chars=None, tree_depth=2)

@pytest.fixture
def store():
    return MemoryStateStore()

@pytest.fixture
def host():
    return FileSystemHost()

@pytest.fixture
def tracker(store, host, config):
    return RelevanceTracker(TrackingRegistry(store), host, config)
