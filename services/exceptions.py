"""
Exception types raised by the library finder services.
"""


class LibraryFinderError(Exception):
    """Base class for service errors that map to a client-facing message."""
    pass


class InvalidInputError(LibraryFinderError):
    """Request input the caller can correct (ISBN count or format, missing title)."""
    pass


class UpstreamFailureError(LibraryFinderError):
    """A required upstream dependency could not be used."""
    pass


class DirectoryFetchError(Exception):
    """The library directory store could not be read."""
    pass
