"""Error taxonomy for SOP generation and export."""


class SOPEngineError(Exception):
    """Base class for SOP engine failures."""

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


class GenerationFailure(SOPEngineError):
    """The generative-text service failed or returned nothing usable."""

    def __init__(self, message: str, producer: str | None = None, recoverable: bool = False):
        super().__init__(message, recoverable=recoverable)
        self.producer = producer


class AssemblyFailure(SOPEngineError):
    """One of the concurrent producers failed, so no document was built."""

    def __init__(self, message: str, producer: str | None = None):
        super().__init__(message, recoverable=False)
        self.producer = producer


class ExportFailure(SOPEngineError):
    """Rendering a document into an output format failed.

    Recoverable: callers can retry with a different format or template.
    """

    def __init__(self, message: str, export_format: str | None = None):
        super().__init__(message, recoverable=True)
        self.export_format = export_format
