from __future__ import annotations

import threading
from typing import Optional

from metaforge.core.factory import ObjectFactory

_SHARED_FACTORY: Optional[ObjectFactory] = None
_SHARED_FACTORY_LOCK = threading.Lock()


def get_factory() -> ObjectFactory:
    """
    Process-wide factory, built from configuration on first use.

    Construction errors (unreachable stores, bad registry) propagate; tests
    replace this dependency through ``app.dependency_overrides``.
    """
    global _SHARED_FACTORY
    with _SHARED_FACTORY_LOCK:
        if _SHARED_FACTORY is None:
            _SHARED_FACTORY = ObjectFactory.from_config_file()
        return _SHARED_FACTORY
