"""Error taxonomy of the resolver."""

from enum import Enum
from pathlib import Path
from typing import List, Optional


class ErrorKind(Enum):
    NOT_FOUND = "not found"
    RETRIEVAL_ERROR = "retrieval error"
    DESCRIPTOR_PARSE_ERROR = "descriptor parse error"
    METADATA_PARSE_ERROR = "metadata parse error"
    TRANSFER_ERROR = "transfer error"


class DocumentParseError(Exception):
    """Raised by the XML readers, carries every diagnostic that was found."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class DependencyError(Exception):
    """A failure while resolving or transferring a dependency.

    Attributes:
        kind: What went wrong.
        dependency: The coordinate being processed.
        location: Repository location(s) that were consulted.
        errors: Parse diagnostics, in document order.
        destination: Target directory, for transfer errors.
    """

    def __init__(
        self,
        kind: ErrorKind,
        dependency,
        location: Optional[str] = None,
        errors: Optional[List[str]] = None,
        destination: Optional[Path] = None,
    ):
        self.kind = kind
        self.dependency = dependency
        self.location = location
        self.errors = list(errors or [])
        self.destination = destination
        super().__init__(self._describe())

    def _describe(self) -> str:
        if self.kind == ErrorKind.NOT_FOUND:
            return f"Couldn't find artifact for dependency '{self.dependency}' at {self.location}"
        if self.kind == ErrorKind.RETRIEVAL_ERROR:
            return f"Unexpected error while retrieving artifact for dependency '{self.dependency}' from '{self.location}'"
        if self.kind == ErrorKind.TRANSFER_ERROR:
            return (f"Unable to transfer dependency '{self.dependency}' from '{self.location}' "
                    f"into '{self.destination}'")
        document = "POM" if self.kind == ErrorKind.DESCRIPTOR_PARSE_ERROR else "metadata"
        message = f"Unable to parse artifact {document} for dependency '{self.dependency}' at '{self.location}'"
        if self.errors:
            message += ":\n" + "\n".join(self.errors)
        return message

    @classmethod
    def not_found(cls, dependency, location: str) -> 'DependencyError':
        return cls(ErrorKind.NOT_FOUND, dependency, location)

    @classmethod
    def retrieval_error(cls, dependency, location: str) -> 'DependencyError':
        return cls(ErrorKind.RETRIEVAL_ERROR, dependency, location)

    @classmethod
    def descriptor_parse_error(cls, dependency, location: str, errors: List[str]) -> 'DependencyError':
        return cls(ErrorKind.DESCRIPTOR_PARSE_ERROR, dependency, location, errors)

    @classmethod
    def metadata_parse_error(cls, dependency, location: str, errors: List[str]) -> 'DependencyError':
        return cls(ErrorKind.METADATA_PARSE_ERROR, dependency, location, errors)

    @classmethod
    def transfer_error(cls, dependency, location: str, destination: Path) -> 'DependencyError':
        return cls(ErrorKind.TRANSFER_ERROR, dependency, location, destination=destination)
