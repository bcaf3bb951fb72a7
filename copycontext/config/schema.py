# copycontext/config/schema.py
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

class AppConfig(BaseModel):
    max_chars: Optional[int] = 200_000 # Character budget of the snapshot; None or <= 0 disables it
    max_files: Optional[int] = None # Cap on file sections; None means no cap, <= 0 means none
    structure_mode: Literal["full", "smart"] = "smart"
    tree_depth: int = Field(default=2, ge=1)
    ignore_file: str = ".gitignore" # Read from the project root; empty string disables
    extra_ignore_globs: List[str] = Field(default_factory=lambda: [
        # Version control
        ".git/", ".svn/", ".hg/",
        # IDE/Editor config
        ".idea/", ".vscode/", "*.sublime-workspace",
        # Python specific
        "__pycache__/", "*.pyc", "*.pyo", "*.egg-info/", ".pytest_cache/", ".mypy_cache/",
        # Virtual environments
        "venv/", ".venv/",
        # Build artifacts / Distribution
        "build/", "dist/", "node_modules/", "target/", "out/",
        # OS specific
        ".DS_Store", "Thumbs.db",
    ])
    log_level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("structure_mode", mode="before")
    @classmethod
    def _lower_mode(cls, value):
        return value.lower() if isinstance(value, str) else value
