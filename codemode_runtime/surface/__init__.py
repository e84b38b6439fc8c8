from .cache import SurfaceCache
from .generator import (
    GeneratedSurface,
    SurfaceLanguage,
    generate_description_list,
    generate_surface,
    generate_type_declaration,
)

__all__ = [
    "GeneratedSurface",
    "SurfaceCache",
    "SurfaceLanguage",
    "generate_description_list",
    "generate_surface",
    "generate_type_declaration",
]
