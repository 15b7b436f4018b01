"""Exception types raised by meshview."""


class MeshViewError(Exception):
    """Base class for all meshview errors."""


class InvalidArgumentError(MeshViewError, ValueError):
    """An argument breaks a documented precondition (empty mesh list, bad camera, ...)."""


class ExportError(MeshViewError, OSError):
    """Writing an export file failed. The original OSError is chained as __cause__."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path
