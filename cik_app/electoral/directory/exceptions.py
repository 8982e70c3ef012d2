"""Directory exception classes."""


class DirectoryUnavailableError(RuntimeError):
    """Raised when identity or hierarchy lookups cannot be completed."""


class DirectoryMisconfiguredError(RuntimeError):
    """Raised when the directory backend configuration is missing."""


__all__ = [
    "DirectoryUnavailableError",
    "DirectoryMisconfiguredError",
]
