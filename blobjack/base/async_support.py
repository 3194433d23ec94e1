"""
Async support for Blobjack.

Storage adapters are synchronous. :class:`AsyncMixin` gives every public
adapter method an awaitable twin (``upload`` -> ``aupload``) that runs the
call in a worker thread via :func:`asyncio.to_thread`, so async callers can
await, time out (``asyncio.wait_for``) or cancel storage calls without
blocking the event loop.

Usage::

    storage = storage_factory("azure", config)
    url = await storage.aupload("2024/01/01/a.png", data)
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from typing import Any, Callable, Coroutine, TypeVar

T = TypeVar("T")


def async_wrap(
    fn: Callable[..., T],
) -> Callable[..., Coroutine[Any, Any, T]]:
    """Return an async version of *fn* that runs it in a thread.

    The wrapper preserves the original function's name and docstring.
    """

    @functools.wraps(fn)
    async def _wrapper(*args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(fn, *args, **kwargs)

    return _wrapper


class AsyncMixin:
    """Mixin that auto-generates ``a<method>`` async variants.

    Subclass this *alongside* the blueprint. Async twins are created once,
    at class definition time, for every public method defined directly on
    the subclass.

    Example::

        class Storage(AssetStorageBlueprint, AsyncMixin):
            def download(self, key: str) -> bytes: ...
            # => await self.adownload(key) is now available

    Note that cancelling the awaiting task abandons the wait but cannot
    interrupt the SDK call already running in the worker thread; any partial
    server-side effect is provider-defined.
    """

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        for name in list(vars(cls)):
            if name.startswith("_"):
                continue
            attr = getattr(cls, name)
            if callable(attr) and not inspect.iscoroutinefunction(attr) and not inspect.isclass(attr):
                async_name = f"a{name}"
                if not hasattr(cls, async_name):
                    setattr(cls, async_name, async_wrap(attr))
