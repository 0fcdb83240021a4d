"""Core building blocks of a lazily opened file."""

from .buffered import BufferedHandle, replicate
from .flush import FlushCoordinator, FlushState, RetryPolicy
from .identity import FileIdentity, resolve
from .lifecycle import AccessMode, HandleLifecycle, HandleState
from .metadata import MetadataCache, MetadataSnapshot
from .protocols import MetadataProvider, PathOperations, PlatformOperations, Reader, Writer

__all__ = [
    "AccessMode",
    "BufferedHandle",
    "FileIdentity",
    "FlushCoordinator",
    "FlushState",
    "HandleLifecycle",
    "HandleState",
    "MetadataCache",
    "MetadataProvider",
    "MetadataSnapshot",
    "PathOperations",
    "PlatformOperations",
    "Reader",
    "RetryPolicy",
    "Writer",
    "replicate",
    "resolve",
]
