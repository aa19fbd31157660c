from .extension_registry import ExtensionDescriptor, ExtensionRegistry, discover_extension, load_extension
from .operation_registry import OperationDescriptor, OperationRegistry

__all__ = [
    "ExtensionDescriptor",
    "ExtensionRegistry",
    "OperationDescriptor",
    "OperationRegistry",
    "discover_extension",
    "load_extension",
]
