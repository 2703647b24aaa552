"""
attrflow Model Options
======================

Per-model configuration, given as class keyword arguments::

    class Person(Model, propagation="transitive", thread_safe=True):
        ...

or as keyword arguments to :func:`attrflow.make_model`. Subclasses inherit
the options of their first Model base unless they override them.
"""

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Union

from .errors import ModelDefinitionError


class Propagation(Enum):
    """How far a stored attribute write propagates."""

    # Only computed attributes declared directly on the written name
    DIRECT = "direct"
    # The full dependent closure, in topological order
    TRANSITIVE = "transitive"


@dataclass(frozen=True)
class ModelOptions:
    """Immutable configuration shared by every instance of a model type."""

    propagation: Propagation = Propagation.DIRECT
    thread_safe: bool = False

    def merge(self, overrides: Dict[str, Any]) -> "ModelOptions":
        """Return a copy with ``overrides`` applied, validating every key."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ModelDefinitionError(
                f"Unknown model option(s): {', '.join(unknown)}"
            )

        values = dict(overrides)
        if "propagation" in values:
            values["propagation"] = _coerce_propagation(values["propagation"])
        if "thread_safe" in values:
            values["thread_safe"] = bool(values["thread_safe"])
        return replace(self, **values)


def _coerce_propagation(value: Union[str, Propagation]) -> Propagation:
    if isinstance(value, Propagation):
        return value
    try:
        return Propagation(str(value).lower())
    except ValueError:
        choices = ", ".join(p.value for p in Propagation)
        raise ModelDefinitionError(
            f"Invalid propagation mode {value!r}; expected one of: {choices}"
        ) from None


DEFAULT_OPTIONS = ModelOptions()
