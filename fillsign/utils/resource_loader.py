"""
Resource and per-user directory helpers for bundled and development runs.
"""
import os
import sys
from pathlib import Path

APP_NAME = "FillSign"


def get_resource_path(relative_path: str) -> str:
    """
    Get the absolute path to a bundled resource (fonts, icons).

    Handles both running from source and running from a PyInstaller bundle.

    Args:
        relative_path: Path relative to the project root

    Returns:
        Absolute path to the resource
    """
    if hasattr(sys, '_MEIPASS'):
        base_path = Path(sys._MEIPASS)
    else:
        base_path = Path(__file__).resolve().parent.parent.parent

    return str(base_path / relative_path)


def get_config_dir(app_name: str = APP_NAME) -> Path:
    """
    Get the configuration directory, creating it if needed.

    Args:
        app_name: Name of the application

    Returns:
        Path to the config directory
    """
    if os.name == 'nt':  # Windows
        config_dir = Path(os.environ.get('APPDATA', os.path.expanduser('~'))) / app_name / "config"
    elif sys.platform == 'darwin':  # macOS
        config_dir = Path.home() / "Library" / "Preferences" / app_name
    else:  # Linux
        config_dir = Path.home() / ".config" / app_name

    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_cache_dir(app_name: str = APP_NAME) -> Path:
    """
    Get the cache directory used for logs, creating it if needed.

    Args:
        app_name: Name of the application

    Returns:
        Path to the cache directory
    """
    if os.name == 'nt':  # Windows
        cache_dir = Path(os.environ.get('LOCALAPPDATA', os.path.expanduser('~'))) / app_name / "cache"
    elif sys.platform == 'darwin':  # macOS
        cache_dir = Path.home() / "Library" / "Caches" / app_name
    else:  # Linux
        cache_dir = Path.home() / ".cache" / app_name

    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir
