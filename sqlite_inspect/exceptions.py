from typing import Optional


class InspectError(Exception):
    """
    Base class for everything that can go wrong while decoding a database file.

    The offending page number and byte offset are kept on the instance and
    appended to the message, since they are usually what you need to go and
    look at the file with a hex editor.
    """

    def __init__(
        self, message: str, page: Optional[int] = None, offset: Optional[int] = None
    ):
        self.message = message
        self.page = page
        self.offset = offset
        super().__init__(self._describe())

    def _describe(self) -> str:
        location = []
        if self.page is not None:
            location.append(f"page {self.page}")
        if self.offset is not None:
            location.append(f"offset {self.offset}")

        if not location:
            return self.message
        return f"{self.message} ({', '.join(location)})"


class DatabaseIOError(InspectError, IOError):
    """A read ran past the end of the file."""


class FormatError(InspectError):
    """The bytes do not follow the file format."""


class UnsupportedFeatureError(InspectError):
    """The file is valid but uses something this reader does not handle."""
