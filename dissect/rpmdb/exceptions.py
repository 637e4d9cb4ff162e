from __future__ import annotations

import traceback


class Error(Exception):
    """Generic dissect.rpmdb error"""

    def __init__(self, message: str | None = None, cause: Exception | None = None, extra: list | None = None):
        if extra:
            exceptions = "\n\n".join(["".join(traceback.format_exception_only(type(e), e)) for e in extra])
            message = f"{message}\n\nAdditionally, the following exceptions occurred:\n\n{exceptions}"

        super().__init__(message)
        self.__cause__ = cause
        self.__extra__ = extra


class ReadError(Error):
    """The database file could not be read (short read, unreadable file, bad seek)."""


class FormatError(Error):
    """The database or header blob is malformed or not supported."""


class UnsupportedValueError(FormatError):
    """A well-formed tag carries an unexpected type or value."""
