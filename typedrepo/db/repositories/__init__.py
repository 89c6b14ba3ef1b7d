"""
Repository modules for typed data access.
"""
from .repository import Repository

__all__ = ["Repository"]
