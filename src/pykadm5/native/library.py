"""
pykadm5 Native Library Loader

Locates and opens the MIT kadm5 shared library through cffi in ABI mode.

Two flavours exist:
- ``libkadm5clnt_mit``: talks to a remote kadmind over RPC
- ``libkadm5srv_mit``: operates on the local KDC database (kadmin.local)

The krb5 functions pykadm5 needs are resolved through the kadm5 library's
own dependencies, so only one shared object has to be opened.
"""

from __future__ import annotations

import ctypes.util
import threading
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import attrs
import structlog

from pykadm5.core.exceptions import LibraryLoadError
from pykadm5.native.cdefs import ffi

logger = structlog.get_logger()


# =============================================================================
# LIBRARY VARIANTS
# =============================================================================


class KAdm5Variant(Enum):
    """Which kadm5 library to bind to."""

    CLIENT = "client"
    SERVER = "server"

    @property
    def candidates(self) -> List[str]:
        """Shared object names tried in order when no path is configured."""
        if self is KAdm5Variant.CLIENT:
            names = ["libkadm5clnt_mit.so.12", "libkadm5clnt_mit.so", "libkadm5clnt_mit.dylib"]
            found = ctypes.util.find_library("kadm5clnt_mit")
        else:
            names = ["libkadm5srv_mit.so.12", "libkadm5srv_mit.so", "libkadm5srv_mit.dylib"]
            found = ctypes.util.find_library("kadm5srv_mit")
        if found and found not in names:
            names.append(found)
        return names


@attrs.define(frozen=True)
class Kadm5Library:
    """
    An opened kadm5 library.

    Attributes:
        ffi: The cffi instance holding the declarations
        lib: Object exposing the native functions
        variant: Client or server library
        path: Shared object that was opened
    """

    ffi: Any
    lib: Any
    variant: KAdm5Variant
    path: Optional[str] = None

    @property
    def is_server(self) -> bool:
        return self.variant is KAdm5Variant.SERVER


# =============================================================================
# LOADING
# =============================================================================

_cache: Dict[Tuple[KAdm5Variant, Optional[str]], Kadm5Library] = {}
_cache_lock = threading.Lock()


def load_library(
    variant: KAdm5Variant = KAdm5Variant.CLIENT,
    library_path: Optional[str] = None,
) -> Kadm5Library:
    """
    Open the kadm5 library for ``variant``.

    Libraries are opened once per (variant, path) and shared afterwards.

    Args:
        variant: Client or server library
        library_path: Explicit shared object to open instead of searching

    Returns:
        The opened library

    Raises:
        LibraryLoadError: if no candidate could be opened
    """
    key = (variant, library_path)
    with _cache_lock:
        library = _cache.get(key)
        if library is not None:
            return library

        candidates = [library_path] if library_path else variant.candidates
        errors = []
        for candidate in candidates:
            try:
                lib = ffi.dlopen(candidate)
            except OSError as e:
                errors.append(f"{candidate}: {e}")
                continue

            library = Kadm5Library(ffi=ffi, lib=lib, variant=variant, path=candidate)
            _cache[key] = library
            logger.debug("kadm5_library_loaded", variant=variant.value, path=candidate)
            return library

    logger.warning("kadm5_library_not_found", variant=variant.value, tried=candidates)
    raise LibraryLoadError(
        f"Could not load the kadm5 {variant.value} library: " + "; ".join(errors)
    )
