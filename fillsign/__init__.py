"""
Fill & Sign: place text and signature stamps on PDF pages and bake them in.
"""

__version__ = "0.1.0"
