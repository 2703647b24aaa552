"""
attrflow Factory - Model Types from Declarative Configuration
=============================================================

:func:`make_model` builds a Model subclass from plain data instead of a class
statement. The result is indistinguishable from the equivalent class: the
same registry is built and frozen, with the same validation.

```python
from attrflow import make_model

Person = make_model(
    "Person",
    stored=["name", "surname"],
    computed=[
        ("fullname", ["name", "surname"], lambda p: f"{p.name} {p.surname}"),
    ],
)
```
"""

from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Tuple, Union

from .accessors import ComputedAttribute, StoredAttribute
from .errors import ModelDefinitionError
from .model import Model, ModelMeta

ComputedSpec = Tuple[Iterable[str], Callable[[Any], Any]]


def make_model(
    name: str,
    stored: Union[Iterable[str], Mapping[str, Any]] = (),
    computed: Union[
        Mapping[str, ComputedSpec], Iterable[Tuple[str, Iterable[str], Callable]]
    ] = (),
    bases: Sequence[type] = (Model,),
    module: Optional[str] = None,
    doc: Optional[str] = None,
    **options: Any,
) -> type:
    """
    Create a Model subclass.

    Args:
        name: Class name of the new model type
        stored: Stored attribute names, or a mapping of name -> default
        computed: Mapping of name -> (dependencies, function), or an iterable
            of (name, dependencies, function) triples
        bases: Base classes, at least one of them a Model
        module: Value for ``__module__``
        doc: Class docstring
        **options: Model options, see :class:`attrflow.options.ModelOptions`

    Raises:
        ModelDefinitionError: The configuration is malformed, a name is
            declared twice, or the registry rejects the graph
    """
    if not any(isinstance(base, type) and issubclass(base, Model) for base in bases):
        raise ModelDefinitionError(f"{name} must derive from Model")

    namespace = {"__module__": module or __name__, "__doc__": doc}
    if isinstance(stored, Mapping):
        for attr_name, default in stored.items():
            namespace[attr_name] = StoredAttribute(default)
    else:
        for attr_name in stored:
            namespace[attr_name] = StoredAttribute()

    if isinstance(computed, Mapping):
        entries = [(attr_name,) + tuple(spec) for attr_name, spec in computed.items()]
    else:
        entries = list(computed)

    for entry in entries:
        try:
            attr_name, dependencies, function = entry
        except (TypeError, ValueError):
            raise ModelDefinitionError(
                f"Computed entry {entry!r} must be (name, dependencies, function)"
            ) from None
        if attr_name in namespace:
            raise ModelDefinitionError(
                f"'{attr_name}' is declared as both stored and computed on {name}"
            )
        namespace[attr_name] = ComputedAttribute(function, dependencies)

    return ModelMeta(name, tuple(bases), namespace, **options)
