"""
Utility functions and helpers.
"""
from .log import configure_logging
from .resource_loader import (
    get_cache_dir,
    get_config_dir,
    get_resource_path,
)

__all__ = [
    'configure_logging',
    'get_cache_dir',
    'get_config_dir',
    'get_resource_path',
]
