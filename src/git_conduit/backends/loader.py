"""Memoised, shared-first-use loading of an optional engine library."""

from __future__ import annotations

import asyncio
import importlib
from collections.abc import Callable
from types import ModuleType

from git_conduit.errors import engine_unavailable

Importer = Callable[[str], ModuleType]


class LazyModule:
    """Owns one import of ``module_name``.

    Concurrent first callers wait on the same load; a failed load is not cached, so a later
    call can retry after the library is installed.
    """

    def __init__(
        self,
        module_name: str,
        *,
        engine_id: str,
        importer: Importer = importlib.import_module,
    ) -> None:
        self.module_name = module_name
        self.engine_id = engine_id
        self._importer = importer
        self._module: ModuleType | None = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._module is not None

    async def get(self) -> ModuleType:
        if self._module is not None:
            return self._module
        async with self._lock:
            if self._module is None:
                try:
                    self._module = await asyncio.to_thread(self._importer, self.module_name)
                except ImportError as exc:
                    raise engine_unavailable(
                        engine_id=self.engine_id,
                        detail=f"{self.module_name} is not installed",
                    ) from exc
            return self._module


__all__ = ["Importer", "LazyModule"]
