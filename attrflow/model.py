"""
attrflow Model - Reactive Object Models
=======================================

This module provides :class:`Model`, the base class for object models with
stored and computed attributes, and :class:`ModelMeta`, the metaclass that
turns a class body into a frozen :class:`~attrflow.registry.DependencyRegistry`.

Declaring a Model
-----------------

```python
from attrflow import Model, computed, stored

class Cart(Model):
    price = stored(0)
    quantity = stored(1)

    @computed("price", "quantity")
    def total(self):
        return self.price * self.quantity

cart = Cart(price=10)
cart.total       # 10
cart.quantity = 3
cart.total       # 30
```

When the class statement completes, the metaclass collects every stored and
computed declaration (its own and those inherited from Model bases), issues
them on a fresh registry and freezes it. Dependency names that were never
declared and cyclic computed dependencies are reported right there, as
:class:`~attrflow.errors.UnknownAttributeError` and
:class:`~attrflow.errors.CircularDependencyError`.

Construction
------------

``Model(**values)`` writes every supplied stored attribute, and every stored
attribute with a default that was not supplied, through the stored accessor
as one batch: all values are cached first, then each dependent computed
attribute is evaluated once, in topological order. Computed attributes are
therefore seeded from the complete initial state before the constructor
returns. Subclasses that override ``__init__`` and assign attributes one at a
time (``self.name = ...``) still route every write through the accessor, but
each assignment propagates on its own; calling ``super().__init__(**values)``
gives the batched seeding.

Stored attributes that are neither supplied nor defaulted stay unset and read
as ``None`` inside recompute functions.

Copying an instance with :mod:`copy` gives the copy its own cache.

Options
-------

Class keyword arguments configure the model type, see
:mod:`attrflow.options`:

```python
class Chain(Model, propagation="transitive", thread_safe=True):
    ...
```

Limitations
-----------

With the default ``propagation="direct"`` only computed attributes that list
the written name among their own dependencies are refreshed. A computed
attribute that depends on another computed attribute stays stale until one
of its direct dependencies is written or :meth:`Model.refresh` is called.
"""

from copy import deepcopy
from typing import Any, ClassVar, Dict, Iterator, Mapping, Union

from .accessors import (
    ComputedAttribute,
    StoredAttribute,
    read_attribute,
    recompute,
    write_many,
    write_stored,
)
from .cache import CACHE_ATTR, cache_for
from .errors import ModelDefinitionError, ModelError, RegistryFrozenError
from .options import DEFAULT_OPTIONS, ModelOptions
from .registry import AttributeKind, DependencyRegistry

Declaration = Union[StoredAttribute, ComputedAttribute]


class ModelMeta(type):
    """
    Metaclass for Model that builds and freezes the dependency registry of
    each model type.
    """

    def __new__(mcs, name: str, bases: tuple, namespace: dict, **options: Any):
        base_options = DEFAULT_OPTIONS
        declarations: Dict[str, Declaration] = {}
        for base in reversed(bases):
            if isinstance(base, ModelMeta):
                declarations.update(base.__declarations__)
        for base in bases:
            if isinstance(base, ModelMeta):
                base_options = base.__options__
                break

        for attr_name, attr_value in namespace.items():
            if isinstance(attr_value, (StoredAttribute, ComputedAttribute)):
                # Overrides an inherited declaration of the same name
                declarations.pop(attr_name, None)
                declarations[attr_name] = attr_value
            elif attr_name in declarations:
                raise ModelDefinitionError(
                    f"{name}.{attr_name} shadows an inherited model attribute"
                )

        model_options = base_options.merge(options) if options else base_options

        cls = super().__new__(mcs, name, bases, namespace)

        registry = DependencyRegistry(name, model_options.propagation)
        for declaration in declarations.values():
            declaration.declare(registry)
        registry.freeze()

        type.__setattr__(cls, "__declarations__", declarations)
        type.__setattr__(cls, "__options__", model_options)
        type.__setattr__(cls, "__registry__", registry)
        return cls

    def __init__(cls, name: str, bases: tuple, namespace: dict, **options: Any):
        super().__init__(name, bases, namespace)

    def __setattr__(cls, name: str, value: Any) -> None:
        """Reject attribute declarations after the class is defined."""
        if name in cls.__dict__.get("__declarations__", {}) or isinstance(
            value, (StoredAttribute, ComputedAttribute)
        ):
            raise RegistryFrozenError(
                f"Cannot redefine '{name}': {cls.__name__} is already defined"
            )
        super().__setattr__(name, value)

    def __delattr__(cls, name: str) -> None:
        if name in cls.__dict__.get("__declarations__", {}):
            raise RegistryFrozenError(
                f"Cannot delete '{name}': {cls.__name__} is already defined"
            )
        super().__delattr__(name)


class Model(metaclass=ModelMeta):
    """
    Base class for objects with stored and computed attributes.

    Every instance owns a private cache of attribute values; the dependency
    registry is owned by the class and shared.

    Example:
        ```python
        class Person(Model):
            name = stored()
            surname = stored()

            @computed("name", "surname")
            def fullname(self):
                return f"{self.name} {self.surname}"

        john = Person(name="John", surname="Snow")
        john.get("fullname")        # "John Snow"
        john.set("surname", "Stark")
        john.fullname               # "John Stark"
        ```
    """

    # Class attributes set by metaclass
    __registry__: ClassVar[DependencyRegistry]
    __options__: ClassVar[ModelOptions]
    __declarations__: ClassVar[Dict[str, Declaration]]

    def __init__(self, **values: Any):
        registry = type(self).__registry__
        for name in values:
            registry.check_writable(name)

        declarations = type(self).__declarations__
        initial = {}
        for name in registry.stored_names:
            if name in values:
                initial[name] = values[name]
            elif declarations[name].has_default:
                initial[name] = declarations[name].get_default()
        write_many(self, initial)

    def get(self, name: str) -> Any:
        """Return the current value of ``name``, ``None`` if never written."""
        return read_attribute(self, name)

    def set(self, name: str, value: Any) -> None:
        """Write a stored attribute and refresh its dependents."""
        write_stored(self, name, value)

    def is_set(self, name: str) -> bool:
        """Whether ``name`` has been written (or computed) on this instance."""
        type(self).__registry__.kind(name)
        return cache_for(self).is_set(name)

    def refresh(self, *names: str) -> None:
        """
        Recompute computed attributes explicitly, in topological order.

        With no names, every computed attribute of the model is recomputed.
        Refreshing does not propagate further than the named attributes.
        """
        registry = type(self).__registry__
        if not names:
            names = tuple(registry.computed_names)
        for name in names:
            if registry.kind(name) is not AttributeKind.COMPUTED:
                raise ModelError(f"'{name}' is not a computed attribute")

        with cache_for(self).lock:
            for name in registry.topological_order(names):
                recompute(self, name)

    def to_dict(self) -> Dict[str, Any]:
        """Current value of every declared attribute, in declaration order."""
        cache = cache_for(self)
        with cache.lock:
            return {name: cache.get(name) for name in type(self).__registry__.names}

    def load_state(self, state: Mapping[str, Any]) -> None:
        """
        Write stored values from ``state`` through the accessor, as one batch.

        Computed names in ``state`` are skipped, so the output of
        :meth:`to_dict` can be loaded back.
        """
        registry = type(self).__registry__
        for name in state:
            registry.kind(name)
        write_many(
            self, {name: value for name, value in state.items() if registry.is_stored(name)}
        )

    def snapshot(self) -> "ModelSnapshot":
        return ModelSnapshot(self)

    def __copy__(self):
        return self._clone(None)

    def __deepcopy__(self, memo):
        return self._clone(memo)

    def _clone(self, memo):
        cls = type(self)
        clone = cls.__new__(cls)
        if memo is not None:
            memo[id(self)] = clone
        for key, value in self.__dict__.items():
            if key == CACHE_ATTR:
                value = value.copy(cls.__options__.thread_safe, memo)
            elif memo is not None:
                value = deepcopy(value, memo)
            clone.__dict__[key] = value
        return clone

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"{type(self).__name__}({fields})"


class ModelSnapshot:
    """
    Immutable view of a model instance's values at one point in time.
    """

    __slots__ = ("_model_class", "_values")

    def __init__(self, model: Model):
        object.__setattr__(self, "_model_class", type(model))
        object.__setattr__(self, "_values", model.to_dict())

    def __getattr__(self, name: str) -> Any:
        values = object.__getattribute__(self, "_values")
        if name in values:
            return values[name]
        raise AttributeError(f"Snapshot of {self._model_class.__name__} has no '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("ModelSnapshot is immutable")

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModelSnapshot):
            return NotImplemented
        return self._model_class is other._model_class and self._values == other._values

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self._values.items())
        return f"ModelSnapshot({self._model_class.__name__}: {fields})"
