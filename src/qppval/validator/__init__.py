from qppval.validator.dispatch import DocumentValidator, ValidationResult, validate_document
from qppval.validator.registry import ValidatorRegistry, build_default_registry

__all__ = [
    "DocumentValidator",
    "ValidationResult",
    "ValidatorRegistry",
    "build_default_registry",
    "validate_document",
]
