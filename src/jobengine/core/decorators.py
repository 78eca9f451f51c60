"""
Decorator for simplified Pass definition.

Instead of::

    from dataclasses import dataclass
    from jobengine.core import Pass

    @dataclass(slots=True)
    class DrainHauling(Pass):
        def execute(self, state): ...

you can write::

    from jobengine.core import distribution_pass

    @distribution_pass
    class DrainHauling:
        def execute(self, state): ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, TypeVar

T = TypeVar("T")


def distribution_pass(
    cls: type[T] | None = None,
    *,
    name: str | None = None,
    **dataclass_kwargs: Any,
) -> type[T] | Callable[[type[T]], type[T]]:
    """
    Define a Pass with automatic inheritance, dataclass and registration.

    Parameters
    ----------
    cls : type | None
        The class to decorate (provided automatically when used without parens).
    name : str | None
        Optional registry name. Defaults to the snake_case class name.
    **dataclass_kwargs : Any
        Extra arguments for ``@dataclass``; ``slots=True`` is the default.

    Returns
    -------
    type | Callable
        The decorated class or a decorator function.

    Examples
    --------
    >>> @distribution_pass(name="my_pass")
    ... class MyPass:
    ...     def execute(self, state) -> None:
    ...         pass
    """
    from jobengine.core.pass_ import Pass

    dataclass_kwargs.setdefault("slots", True)

    def decorator(cls: type[T]) -> type[T]:
        if not issubclass(cls, Pass):
            # rebuild with Pass as the only base so slots stay valid
            namespace = {
                "__module__": cls.__module__,
                "__qualname__": cls.__qualname__,
                "__annotations__": getattr(cls, "__annotations__", {}),
            }
            for attr_name in dir(cls):
                if not attr_name.startswith("__"):
                    namespace[attr_name] = getattr(cls, attr_name)
            if name is not None:
                namespace["name"] = name

            cls = type(cls.__name__, (Pass,), namespace)

        # set before @dataclass so __init_subclass__ sees it
        if name is not None:
            cls.name = name  # type: ignore[attr-defined]

        return dataclass(**dataclass_kwargs)(cls)

    if cls is None:
        return decorator
    return decorator(cls)
