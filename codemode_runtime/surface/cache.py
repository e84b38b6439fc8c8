"""Explicit cache of generated surfaces.

Entries are keyed by ``(catalog fingerprint, language)``. A changed catalog has
a different fingerprint and therefore never hits a stale entry; ``invalidate``
drops entries explicitly when a catalog is retired.
"""

import threading
from typing import Dict, Optional, Tuple

from codemode_runtime.catalog import CapabilityCatalog

from .generator import GeneratedSurface, SurfaceLanguage, generate_surface

_Key = Tuple[str, SurfaceLanguage]


class SurfaceCache:
    """Cache for generated capability surfaces.

    Attributes:
        max_size: Maximum number of surfaces to keep (0 = unlimited)
    """

    def __init__(self, max_size: int = 0) -> None:
        self._entries: Dict[_Key, GeneratedSurface] = {}
        self._max_size = max_size
        self._lock = threading.Lock()

    def get(self, fingerprint: str, language: SurfaceLanguage = SurfaceLanguage.PYTHON) -> Optional[GeneratedSurface]:
        with self._lock:
            return self._entries.get((fingerprint, SurfaceLanguage(language)))

    def get_or_generate(
        self,
        catalog: CapabilityCatalog,
        language: SurfaceLanguage = SurfaceLanguage.PYTHON,
    ) -> GeneratedSurface:
        """Return the cached surface for ``catalog`` or generate and store it.

        Args:
            catalog: Catalog to describe
            language: Target language of the type declaration

        Returns:
            The generated surface
        """
        key = (catalog.fingerprint, SurfaceLanguage(language))
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                return cached
            surface = generate_surface(catalog, language)
            if self._max_size > 0 and len(self._entries) >= self._max_size:
                # Remove oldest entry (simple FIFO)
                self._entries.pop(next(iter(self._entries)))
            self._entries[key] = surface
            return surface

    def invalidate(self, fingerprint: Optional[str] = None) -> None:
        """Drop the entries of one catalog fingerprint, or everything when omitted."""
        with self._lock:
            if fingerprint is None:
                self._entries.clear()
                return
            for key in [k for k in self._entries if k[0] == fingerprint]:
                del self._entries[key]

    def size(self) -> int:
        """Get the current cache size."""
        return len(self._entries)
