"""Error taxonomy for the citation pipeline."""


class PkgciteError(Exception):
    """Base class for fatal pkgcite errors."""


class ConfigurationError(PkgciteError, ValueError):
    """Invalid argument or configuration value. Raised before any work is done."""


class SerializationError(PkgciteError, OSError):
    """The bibliography file could not be written."""


class RenderError(PkgciteError, RuntimeError):
    """The document renderer failed for one output format."""

    def __init__(self, out_format: str, message: str):
        super().__init__(f"Rendering to '{out_format}' failed: {message}")
        self.out_format = out_format


class ResolutionWarning(UserWarning):
    """Citation metadata for some packages could not be retrieved."""
