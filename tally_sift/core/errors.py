"""
Exception types raised by TallySift.

Every error derives from TallySiftError and from the builtin exception a
caller would naturally catch (ValueError, IndexError), so existing
``except ValueError`` handlers keep working.
"""


class TallySiftError(Exception):
    """Base class for all TallySift errors."""


class DomainError(TallySiftError, ValueError):
    """A parameter or argument is outside its valid domain."""


class SizeMismatchError(TallySiftError, ValueError):
    """Two summaries cannot be combined because their sizes differ."""


class FormatError(TallySiftError, ValueError):
    """A binary buffer cannot be read or a summary cannot be written."""


class EmptyHeapError(TallySiftError, IndexError):
    """An element was requested from an empty heap."""
