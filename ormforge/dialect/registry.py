"""Dialect registry (Open/Closed Principle).

``DialectFactory`` maps dialect identifiers to
:class:`~ormforge.dialect.base.SQLDialect` implementations.  The query
builder, the comparator and the migration generator all resolve their
dialect through it, so a new backend is added by registering one class.

Usage::

    from ormforge.dialect.registry import DialectFactory

    @DialectFactory.register("mysql")
    class MySQLDialect(SQLDialect):
        ...
"""

from __future__ import annotations

from collections.abc import Callable
from typing import ClassVar

from ormforge.dialect.base import SQLDialect
from ormforge.errors import UnsupportedDialectError


class DialectFactory:
    """Registry mapping dialect identifiers to :class:`SQLDialect` classes.

    Dialects are stateless, so :meth:`create` caches one instance per
    identifier.

    Example::

        @DialectFactory.register("mysql")
        class MySQLDialect(SQLDialect):
            ...

        dialect = DialectFactory.create("mysql")
    """

    _dialects: ClassVar[dict[str, type[SQLDialect]]] = {}
    _instances: ClassVar[dict[str, SQLDialect]] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[type[SQLDialect]], type[SQLDialect]]:
        """Decorator that registers a dialect class under ``name``.

        Args:
            name: The dialect identifier (e.g. ``"postgres"``).

        Returns:
            A decorator that registers and returns the dialect class.
        """

        def decorator(dialect_cls: type[SQLDialect]) -> type[SQLDialect]:
            cls.register_class(name, dialect_cls)
            return dialect_cls

        return decorator

    @classmethod
    def register_class(cls, name: str, dialect_cls: type[SQLDialect]) -> None:
        """Register a dialect class without using the decorator form.

        Args:
            name: The dialect identifier.
            dialect_cls: The :class:`SQLDialect` subclass to register.
        """
        cls._dialects[name] = dialect_cls
        cls._instances.pop(name, None)

    @classmethod
    def create(cls, name: str | SQLDialect) -> SQLDialect:
        """Return the dialect registered for ``name``.

        Args:
            name: The dialect identifier, or an already-built dialect which
                is returned unchanged.

        Returns:
            A :class:`SQLDialect` instance.

        Raises:
            UnsupportedDialectError: If no dialect is registered for ``name``.
        """
        if isinstance(name, SQLDialect):
            return name
        instance = cls._instances.get(name)
        if instance is not None:
            return instance
        dialect_cls = cls._dialects.get(name)
        if dialect_cls is None:
            raise UnsupportedDialectError(name, cls.registered_dialects())
        instance = dialect_cls()
        cls._instances[name] = instance
        return instance

    @classmethod
    def registered_dialects(cls) -> list[str]:
        """Return the sorted list of registered dialect identifiers."""
        return sorted(cls._dialects)
