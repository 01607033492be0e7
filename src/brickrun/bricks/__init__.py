"""Bricks"""

from .base import Brick, BrickOptions
from .registry import BrickRegistry, default_registry

__all__ = ["Brick", "BrickOptions", "BrickRegistry", "default_registry"]
