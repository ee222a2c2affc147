"""
Error taxonomy for the shelf pipeline.

Every failure the pipeline can report derives from ShelfError, so the
CLI can print a readable cause chain and exit non-zero.
"""


class ShelfError(Exception):
    """Base class for all pipeline failures."""
    pass


class ConfigError(ShelfError):
    """Raised when bookshelf.yaml is missing, malformed, or incomplete."""
    pass


class NothingToBuild(ShelfError):
    """Raised when the configuration lists no books."""
    pass


class SyncError(ShelfError):
    """Raised when a repository cannot be cloned, opened, or fetched."""
    pass


class RemoteMismatchError(SyncError):
    """Raised when an existing clone points at a different origin URL."""
    pass


class GenerationError(ShelfError):
    """Raised when a book cannot be loaded or produced no artifact."""
    pass


class RenderError(ShelfError):
    """Raised when a template fails to render or cannot be written."""
    pass


class SerializationError(ShelfError):
    """Raised when manifest.json cannot be written."""
    pass
