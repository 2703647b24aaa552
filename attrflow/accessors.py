"""
attrflow Accessors - Stored and Computed Attribute Descriptors
==============================================================

This module holds the runtime half of attrflow: the descriptors a model
class declares its attributes with, and the read/write functions they call.

Stored attributes
-----------------

``stored()`` creates a :class:`StoredAttribute`. Writing it goes through
:func:`write_stored`:

1. the old value is looked up in the instance cache;
2. if the attribute was written before and the new value is the same object
   or compares equal (``==``, Python's default equality), nothing happens:
   no cache mutation and no recomputation;
3. otherwise the new value is cached and every computed attribute in the
   propagation plan of the name is recomputed and cached, synchronously,
   before the write returns. If a recompute function fails, the write is
   rolled back.

:func:`write_many` caches several stored values first and then propagates
once, which is how models are constructed and loaded.

Computed attributes
-------------------

``@computed("a", "b")`` turns a method into a :class:`ComputedAttribute`.
Reading it returns the cached value, which is ``None`` until one of its
dependencies is written (or the model is explicitly refreshed). Writing it
raises :class:`~attrflow.errors.ReadOnlyAttributeError`.

```python
from attrflow import Model, computed, stored

class Person(Model):
    name = stored()
    surname = stored()

    @computed("name", "surname")
    def fullname(self):
        return f"{self.name} {self.surname}"

person = Person(name="John", surname="Snow")
person.fullname          # "John Snow"
person.surname = "Stark"
person.fullname          # "John Stark"
```
"""

import logging
from typing import TYPE_CHECKING, Any, Callable, Iterable, List, Mapping, Optional

from .cache import MISSING, cache_for
from .errors import ComputationError, ModelDefinitionError, ReadOnlyAttributeError

if TYPE_CHECKING:
    from .registry import DependencyRegistry


def _same_value(old: Any, new: Any) -> bool:
    return old is new or old == new


def write_stored(instance: Any, name: str, value: Any) -> bool:
    """
    Write a stored attribute and propagate to its dependents.

    The write is a no-op when the attribute was written before and the new
    value is the same object or compares equal with Python's ``==``. That is
    the language's default equality, so containers such as lists and dicts
    compare by content.

    If a recompute function fails, the stored value and every dependent are
    restored to what they were before the write, so retrying the same value
    propagates again.

    Returns:
        True if the value changed, False if the write was a no-op

    Raises:
        UnknownAttributeError: ``name`` is not declared on the model
        ReadOnlyAttributeError: ``name`` is a computed attribute
        ComputationError: A dependent's recompute function failed
    """
    return bool(write_many(instance, {name: value}))


def write_many(instance: Any, values: Mapping[str, Any]) -> List[str]:
    """
    Write several stored attributes, then propagate once.

    Every value is cached first; the union of the propagation plans of the
    changed names is then recomputed once per computed attribute, in
    topological order. Computed attributes therefore never see a batch
    half-applied.

    Returns:
        The names whose value changed

    Raises:
        UnknownAttributeError: A name is not declared on the model
        ReadOnlyAttributeError: A name is a computed attribute
        ComputationError: A dependent's recompute function failed; the
            whole batch is rolled back
    """
    registry: "DependencyRegistry" = type(instance).__registry__
    for name in values:
        registry.check_writable(name)
    if not values:
        return []
    cache = cache_for(instance)

    with cache.lock:
        changed = []
        for name, value in values.items():
            old = cache.lookup(name)
            if old is MISSING or not _same_value(old, value):
                changed.append(name)
        if not changed:
            return []

        pending = {}
        for name in changed:
            pending.update(dict.fromkeys(registry.propagation_plan(name)))
        plan = registry.topological_order(pending) if len(changed) > 1 else list(pending)

        previous = {name: cache.lookup(name) for name in changed + plan}
        for name in changed:
            cache.set(name, values[name])
        if plan:
            logging.debug(
                f"{registry.model_name}.{', '.join(changed)} changed, "
                f"recomputing {', '.join(plan)}"
            )
        try:
            for dependent in plan:
                recompute(instance, dependent)
        except ComputationError:
            cache.restore(previous)
            raise

    return changed


def recompute(instance: Any, name: str) -> Any:
    """
    Evaluate the recompute function of ``name`` and cache the result.

    Raises:
        ComputationError: The recompute function raised
    """
    registry: "DependencyRegistry" = type(instance).__registry__
    function = registry.recompute_function(name)
    cache = cache_for(instance)

    with cache.lock:
        try:
            value = function(instance)
        except Exception as e:
            raise ComputationError(name, e) from e
        cache.set(name, value)
    return value


def read_attribute(instance: Any, name: str) -> Any:
    """Return the cached value of ``name``, ``None`` if never written."""
    registry: "DependencyRegistry" = type(instance).__registry__
    registry.kind(name)
    cache = cache_for(instance)
    with cache.lock:
        return cache.get(name)


class StoredAttribute:
    """
    Descriptor for a writable attribute.

    Args:
        default: Value written through the accessor at construction time
            when the constructor does not supply one
        default_factory: Zero-argument callable producing the default, for
            mutable defaults
        doc: Attribute docstring
    """

    def __init__(
        self,
        default: Any = MISSING,
        default_factory: Any = MISSING,
        doc: Optional[str] = None,
    ):
        if default is not MISSING and default_factory is not MISSING:
            raise ModelDefinitionError(
                "Cannot specify both default and default_factory"
            )
        self.name: Optional[str] = None
        self.default = default
        self.default_factory = default_factory
        self.__doc__ = doc

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING or self.default_factory is not MISSING

    def get_default(self) -> Any:
        if self.default_factory is not MISSING:
            return self.default_factory()
        return self.default

    def declare(self, registry: "DependencyRegistry") -> None:
        registry.declare_stored(self.name)

    def __get__(self, instance: Any, owner: Optional[type] = None) -> Any:
        if instance is None:
            return self
        return read_attribute(instance, self.name)

    def __set__(self, instance: Any, value: Any) -> None:
        write_stored(instance, self.name, value)

    def __repr__(self) -> str:
        if self.has_default:
            default = (
                self.default if self.default is not MISSING else self.default_factory
            )
            return f"StoredAttribute({self.name!r}, default={default!r})"
        return f"StoredAttribute({self.name!r})"


class ComputedAttribute:
    """
    Descriptor for a read-only attribute derived from other attributes.

    Args:
        function: Called with the instance, returns the new value
        dependencies: Names of the attributes the value is derived from
    """

    def __init__(
        self,
        function: Callable[[Any], Any],
        dependencies: Iterable[str],
        doc: Optional[str] = None,
    ):
        if not callable(function):
            raise ModelDefinitionError(
                f"Computed attribute function must be callable, "
                f"got {type(function).__name__}"
            )
        if isinstance(dependencies, str):
            dependencies = [dependencies]
        self.function = function
        self.dependencies = tuple(dependencies)
        self.name: Optional[str] = getattr(function, "__name__", None)
        self.__doc__ = doc if doc is not None else getattr(function, "__doc__", None)

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def declare(self, registry: "DependencyRegistry") -> None:
        registry.declare_computed(self.name, self.dependencies, self.function)

    def __get__(self, instance: Any, owner: Optional[type] = None) -> Any:
        if instance is None:
            return self
        return read_attribute(instance, self.name)

    def __set__(self, instance: Any, value: Any) -> None:
        raise ReadOnlyAttributeError(type(instance).__name__, self.name)

    def __repr__(self) -> str:
        return f"ComputedAttribute({self.name!r}, depends_on={list(self.dependencies)})"


def stored(
    default: Any = MISSING,
    *,
    default_factory: Any = MISSING,
    doc: Optional[str] = None,
) -> Any:
    """Declare a stored attribute on a Model class."""
    return StoredAttribute(default, default_factory=default_factory, doc=doc)


def computed(*dependencies: Any) -> Callable[[Callable[[Any], Any]], Any]:
    """
    Decorator declaring a method as a computed attribute.

    Dependencies may be given as separate names or as one iterable::

        @computed("name", "surname")
        def fullname(self): ...

        @computed(["price", "quantity"])
        def total(self): ...
    """
    if len(dependencies) == 1 and callable(dependencies[0]):
        raise ModelDefinitionError(
            "computed() needs its dependency names: use @computed('a', 'b')"
        )
    if len(dependencies) == 1 and not isinstance(dependencies[0], str):
        dependencies = tuple(dependencies[0])

    def decorator(function: Callable[[Any], Any]) -> ComputedAttribute:
        return ComputedAttribute(function, dependencies)

    return decorator
