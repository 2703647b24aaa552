"""
attrflow - Stored and Computed Attributes for Object Models

A small reactive dependency-tracking layer: models declare stored attributes
and computed attributes derived from them, and every write to a stored
attribute synchronously refreshes the cached values of its dependents.
"""

from .accessors import ComputedAttribute, StoredAttribute, computed, stored
from .cache import MISSING, InstanceCache
from .errors import (
    CircularDependencyError,
    ComputationError,
    ModelDefinitionError,
    ModelError,
    ReadOnlyAttributeError,
    RegistryFrozenError,
    UnknownAttributeError,
)
from .factory import make_model
from .model import Model, ModelMeta, ModelSnapshot
from .options import ModelOptions, Propagation
from .registry import AttributeKind, DependencyRegistry

__version__ = "0.1.0"

__all__ = [
    # Models
    "Model",
    "ModelMeta",
    "ModelSnapshot",
    "make_model",
    # Declarations
    "stored",
    "computed",
    "StoredAttribute",
    "ComputedAttribute",
    # Registry and cache
    "DependencyRegistry",
    "AttributeKind",
    "InstanceCache",
    "MISSING",
    # Configuration
    "ModelOptions",
    "Propagation",
    # Exceptions
    "ModelError",
    "ModelDefinitionError",
    "RegistryFrozenError",
    "CircularDependencyError",
    "UnknownAttributeError",
    "ReadOnlyAttributeError",
    "ComputationError",
]
