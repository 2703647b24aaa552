"""
attrflow Errors - Exception Taxonomy
====================================

Every failure raised by attrflow derives from :class:`ModelError`. Usage
mistakes on a model instance (writing a computed attribute, naming an
attribute that was never declared) also derive from ``AttributeError`` so
that ``getattr``/``hasattr`` keep behaving the way Python code expects.
"""


class ModelError(Exception):
    """Base class for all attrflow errors."""

    pass


class ModelDefinitionError(ModelError):
    """Raised when a model type is declared inconsistently."""

    pass


class RegistryFrozenError(ModelDefinitionError):
    """Raised when a declaration is attempted on a frozen registry."""

    pass


class CircularDependencyError(ModelDefinitionError):
    """Raised when computed attributes depend on each other in a cycle."""

    def __init__(self, cycle):
        self.cycle = list(cycle)
        super().__init__(
            "Circular dependency detected: " + " -> ".join(map(str, self.cycle))
        )


class UnknownAttributeError(ModelError, AttributeError):
    """Raised when an attribute name was never declared on the model."""

    def __init__(self, model_name: str, name: str):
        super().__init__(f"{model_name} has no declared attribute '{name}'")
        self.model_name = model_name
        self.name = name


class ReadOnlyAttributeError(ModelError, AttributeError):
    """Raised when a computed attribute is the target of a write."""

    def __init__(self, model_name: str, name: str):
        super().__init__(
            f"'{name}' is a computed attribute of {model_name} and cannot be set"
        )
        self.model_name = model_name
        self.name = name


class ComputationError(ModelError):
    """Raised when a recomputation function fails."""

    def __init__(self, name: str, error: BaseException):
        self.name = name
        self.error = error
        super().__init__(f"Error computing '{name}': {error}")


__all__ = [
    "ModelError",
    "ModelDefinitionError",
    "RegistryFrozenError",
    "CircularDependencyError",
    "UnknownAttributeError",
    "ReadOnlyAttributeError",
    "ComputationError",
]
