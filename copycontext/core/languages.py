# copycontext/core/languages.py
from pathlib import PurePosixPath
from typing import Dict, Optional

LANGUAGE_HINTS: Dict[str, str] = {
    ".py": "python", ".pyi": "python", ".pyx": "cython",
    ".js": "javascript", ".mjs": "javascript", ".cjs": "javascript",
    ".ts": "typescript", ".mts": "typescript", ".cts": "typescript",
    ".jsx": "javascriptreact", ".tsx": "typescriptreact",
    ".java": "java", ".kt": "kotlin", ".kts": "kotlin",
    ".cs": "csharp", ".go": "go", ".rs": "rust",
    ".c": "c", ".h": "c", ".cpp": "cpp", ".cc": "cpp", ".cxx": "cpp", ".hpp": "cpp",
    ".rb": "ruby", ".php": "php", ".swift": "swift", ".scala": "scala",
    ".html": "html", ".htm": "html", ".vue": "vue", ".svelte": "svelte",
    ".css": "css", ".scss": "scss", ".less": "less",
    ".json": "json", ".jsonc": "jsonc",
    ".yaml": "yaml", ".yml": "yaml", ".toml": "toml", ".xml": "xml",
    ".sh": "bash", ".bash": "bash", ".zsh": "zsh", ".ps1": "powershell",
    ".sql": "sql", ".graphql": "graphql",
    ".md": "markdown", ".rst": "rst",
    ".ini": "ini", ".cfg": "ini",
    ".lua": "lua", ".dart": "dart", ".r": "r",
}

FILENAME_HINTS: Dict[str, str] = {
    "Dockerfile": "dockerfile",
    "Makefile": "makefile",
    "CMakeLists.txt": "cmake",
}

# Editor language ids that are not useful as fence tags
_GENERIC_LANGUAGE_IDS = {"plaintext", "text", "unknown"}

def language_tag(path: str, language_id: Optional[str] = None) -> str:
    """Fence tag for a file: editor metadata first, then file name/extension, else ''."""
    if language_id and language_id.lower() not in _GENERIC_LANGUAGE_IDS:
        return language_id
    name = PurePosixPath(path).name
    if name in FILENAME_HINTS:
        return FILENAME_HINTS[name]
    return LANGUAGE_HINTS.get(PurePosixPath(name).suffix.lower(), "")

def count_lines(content: str) -> int:
    # Naive split: a trailing newline counts as an extra empty line
    if content == "":
        return 0
    return len(content.split("\n"))
