"""
Controllers package - session logic between the core engine and the UI.
"""
from .fill_sign_controller import FillSignController, Tool

__all__ = ['FillSignController', 'Tool']
