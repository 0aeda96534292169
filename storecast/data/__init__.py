"""
Synthetic Data Module
"""
from .generators import OrderGenerator

__all__ = ["OrderGenerator"]
