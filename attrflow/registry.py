"""
attrflow Dependency Registry - Static Dependency Graph per Model Type
=====================================================================

Every model type owns exactly one :class:`DependencyRegistry`. It is filled
by declaration calls while the class is being defined and frozen as soon as
the class statement completes. After that it is read-only and is shared by
every instance of the type.

The registry holds two mappings:

- ``dependents_of``: attribute name -> ordered set of computed names that
  declared it as a dependency (duplicates suppressed, registration order kept)
- ``recompute``: computed name -> function(instance) -> value

Declarations may appear in any order. A computed attribute may name
dependencies that are declared later in the same pass; unresolved names are
only reported when the registry is frozen.

Duplicate Declarations
----------------------

Declaring the same computed name twice is accepted and the last declaration
wins. The previous recomputation function is discarded, but the dependency
edges it registered are kept: the attribute is still recomputed when any of
its old dependencies change. A warning is logged when this happens.

Propagation Plans
-----------------

Freezing turns the graph into one propagation plan per attribute, the tuple
of computed names to refresh after a write:

- ``Propagation.DIRECT``: the direct dependents, in registration order. A
  computed attribute that depends on another computed attribute is *not*
  refreshed when the underlying stored attribute changes.
- ``Propagation.TRANSITIVE``: the full dependent closure, in topological
  order, so every computed attribute is evaluated after its dependencies.

Example:
    registry = DependencyRegistry("Person")
    registry.declare_stored("name")
    registry.declare_computed(
        "fullname", ["name", "surname"], lambda p: f"{p.name} {p.surname}"
    )
    registry.declare_stored("surname")  # forward reference resolved here
    registry.freeze()

    registry.dependents_of("surname")  # ("fullname",)
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .errors import (
    ModelDefinitionError,
    ReadOnlyAttributeError,
    RegistryFrozenError,
    UnknownAttributeError,
)
from .options import Propagation
from .util.graph import DependencyGraph

RecomputeFunction = Callable[[Any], Any]


class AttributeKind(Enum):
    """Kind of a declared attribute."""

    STORED = "stored"
    COMPUTED = "computed"


class DependencyRegistry:
    """
    Declaration-time dependency graph of one model type.
    """

    def __init__(
        self, model_name: str = "Model", propagation: Propagation = Propagation.DIRECT
    ):
        self.model_name = model_name
        self.propagation = propagation

        # Declared names in first-declaration order
        self._kinds: Dict[str, AttributeKind] = {}
        self._dependents: Dict[str, Dict[str, None]] = {}
        self._recompute: Dict[str, RecomputeFunction] = {}
        self._dependencies: Dict[str, Tuple[str, ...]] = {}

        self._frozen = False
        self._order: List[str] = []
        self._plans: Dict[str, Tuple[str, ...]] = {}

    # ------------------------------------------------------------------
    # Declaration
    # ------------------------------------------------------------------

    def declare_stored(self, name: str) -> None:
        """Declare a stored attribute. Idempotent."""
        self._check_not_frozen(name)
        if self._kinds.get(name) is AttributeKind.COMPUTED:
            raise ModelDefinitionError(
                f"'{name}' is already declared as computed on {self.model_name}"
            )
        self._kinds[name] = AttributeKind.STORED
        self._dependents.setdefault(name, {})

    def declare_computed(
        self, name: str, dependencies: Iterable[str], recompute: RecomputeFunction
    ) -> None:
        """
        Declare a computed attribute and register it as a dependent of each
        of ``dependencies``.
        """
        self._check_not_frozen(name)
        if self._kinds.get(name) is AttributeKind.STORED:
            raise ModelDefinitionError(
                f"'{name}' is already declared as stored on {self.model_name}"
            )
        if not callable(recompute):
            raise ModelDefinitionError(
                f"Recompute function for '{name}' must be callable, "
                f"got {type(recompute).__name__}"
            )
        if isinstance(dependencies, str):
            dependencies = [dependencies]

        if name in self._recompute:
            logging.warning(
                f"Computed attribute '{name}' of {self.model_name} redeclared; "
                "the previous recompute function is replaced and its "
                "dependency edges are kept"
            )

        self._kinds[name] = AttributeKind.COMPUTED
        self._recompute[name] = recompute
        self._dependencies[name] = tuple(dict.fromkeys(dependencies))
        self._dependents.setdefault(name, {})
        for dependency in self._dependencies[name]:
            self._dependents.setdefault(dependency, {})[name] = None

    def freeze(self) -> "DependencyRegistry":
        """
        Validate the graph, compute propagation plans and make the registry
        read-only. Calling it again is a no-op.

        Raises:
            UnknownAttributeError: A dependency names an undeclared attribute
            CircularDependencyError: Computed attributes form a cycle
        """
        if self._frozen:
            return self

        for dependency in self._dependents:
            if dependency not in self._kinds:
                raise UnknownAttributeError(self.model_name, dependency)

        graph: DependencyGraph[str] = DependencyGraph()
        for name in self._kinds:
            graph.add_node(name)
        for dependency, dependents in self._dependents.items():
            for dependent in dependents:
                graph.add_edge(dependency, dependent)

        self._order = graph.topological_sort()
        for name in self._kinds:
            if self.propagation is Propagation.TRANSITIVE:
                self._plans[name] = tuple(graph.descendants(name))
            else:
                self._plans[name] = tuple(self._dependents[name])

        self._frozen = True
        logging.debug(
            f"Froze registry for {self.model_name}: "
            f"{len(self.stored_names)} stored, {len(self.computed_names)} computed, "
            f"propagation={self.propagation.value}"
        )
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def kind(self, name: str) -> AttributeKind:
        try:
            return self._kinds[name]
        except KeyError:
            raise UnknownAttributeError(self.model_name, name) from None

    def is_stored(self, name: str) -> bool:
        return self._kinds.get(name) is AttributeKind.STORED

    def is_computed(self, name: str) -> bool:
        return self._kinds.get(name) is AttributeKind.COMPUTED

    def check_writable(self, name: str) -> None:
        """
        Raise unless ``name`` is a declared stored attribute.

        Raises:
            UnknownAttributeError: ``name`` was never declared
            ReadOnlyAttributeError: ``name`` is computed
        """
        if self.kind(name) is AttributeKind.COMPUTED:
            raise ReadOnlyAttributeError(self.model_name, name)

    def dependents_of(self, name: str) -> Tuple[str, ...]:
        """Computed names that declared ``name`` as a direct dependency."""
        self.kind(name)
        return tuple(self._dependents[name])

    def dependencies_of(self, name: str) -> Tuple[str, ...]:
        """Dependencies declared by the latest declaration of ``name``."""
        self.kind(name)
        return self._dependencies.get(name, ())

    def recompute_function(self, name: str) -> RecomputeFunction:
        try:
            return self._recompute[name]
        except KeyError:
            if name in self._kinds:
                raise ModelDefinitionError(
                    f"'{name}' is a stored attribute of {self.model_name} "
                    "and has no recompute function"
                ) from None
            raise UnknownAttributeError(self.model_name, name) from None

    def propagation_plan(self, name: str) -> Tuple[str, ...]:
        """Computed names refreshed, in order, after ``name`` changes."""
        self._check_frozen()
        self.kind(name)
        return self._plans[name]

    def topological_order(self, names: Optional[Iterable[str]] = None) -> List[str]:
        """
        Declared names with every attribute after its dependencies.

        When ``names`` is given, only those names are returned, still in
        topological order.
        """
        self._check_frozen()
        if names is None:
            return list(self._order)
        wanted = set()
        for name in names:
            self.kind(name)
            wanted.add(name)
        return [name for name in self._order if name in wanted]

    @property
    def names(self) -> List[str]:
        return list(self._kinds)

    @property
    def stored_names(self) -> List[str]:
        return [n for n, k in self._kinds.items() if k is AttributeKind.STORED]

    @property
    def computed_names(self) -> List[str]:
        return [n for n, k in self._kinds.items() if k is AttributeKind.COMPUTED]

    def __contains__(self, name: object) -> bool:
        return name in self._kinds

    def __len__(self) -> int:
        return len(self._kinds)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return (
            f"DependencyRegistry({self.model_name}, stored={self.stored_names}, "
            f"computed={self.computed_names}, {state})"
        )

    # ------------------------------------------------------------------

    def _check_not_frozen(self, name: str) -> None:
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot declare '{name}': registry for {self.model_name} is frozen"
            )

    def _check_frozen(self) -> None:
        if not self._frozen:
            raise ModelDefinitionError(
                f"Registry for {self.model_name} has not been frozen yet"
            )
