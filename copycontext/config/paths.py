# copycontext/config/paths.py
import os
import sys
from pathlib import Path

APP_NAME = "copycontext"
HOME_ENV_VAR = "COPYCONTEXT_HOME"

def get_user_data_dir() -> Path:
    """Per-user data directory. COPYCONTEXT_HOME overrides the platform default."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        path = Path(override)
    elif sys.platform == "win32":
        appdata_path = os.environ.get("APPDATA")
        path = Path(appdata_path) / APP_NAME if appdata_path else Path.home() / "AppData/Roaming" / APP_NAME
    else:
        xdg_path = os.environ.get("XDG_CONFIG_HOME")
        path = Path(xdg_path) / APP_NAME if xdg_path else Path.home() / ".config" / APP_NAME

    path.mkdir(parents=True, exist_ok=True)
    return path

def get_user_config_file() -> Path:
    """Get the path to the user's config.json file."""
    return get_user_data_dir() / "config.json"

def get_user_log_dir() -> Path:
    path = get_user_data_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path

def get_user_state_dir() -> Path:
    """Directory holding the pinned-item state of each project root."""
    path = get_user_data_dir() / "state"
    path.mkdir(parents=True, exist_ok=True)
    return path
