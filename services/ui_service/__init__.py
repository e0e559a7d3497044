"""
UI service - handles user interface components and interactions.
"""

from .rendering_surface import RenderingSurface, RenderMode

__all__ = [
    'RenderingSurface',
    'RenderMode'
]
