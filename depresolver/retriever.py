"""Reading and transferring artifacts from local and remote repositories."""

import hashlib
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Dict, Optional

import requests

from . import __version__
from .repository import RepositoryArtifact

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30
CHUNK_SIZE = 64 * 1024

# Published checksum files, strongest first.
CHECKSUMS = (("sha256", ".sha256"), ("md5", ".md5"))


@dataclass
class ArtifactInfo:
    """What a repository reports about an artifact without sending it."""

    size: Optional[int] = None
    last_modified: Optional[float] = None


def _parse_http_date(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value).timestamp()
    except (TypeError, ValueError):
        return None


def _file_digest(path: Path, algorithm: str) -> str:
    digest = hashlib.new(algorithm)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class ArtifactRetriever:
    """Reads artifacts over HTTP(S) or straight from the file system.

    Missing artifacts are reported as ``None``/``False``, transport failures
    propagate as ``requests.RequestException`` or ``OSError``.
    """

    def __init__(self):
        """Initialize the retriever with a shared HTTP session."""
        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": f"depresolver/{__version__}"
        })

    @staticmethod
    def caching() -> 'CachingArtifactRetriever':
        """A retriever that remembers what it already read."""
        return CachingArtifactRetriever()

    @staticmethod
    def _auth(artifact: RepositoryArtifact):
        repository = artifact.repository
        if repository.username and repository.password:
            return repository.username, repository.password
        return None

    def _request(self, method: str, artifact: RepositoryArtifact, **kwargs) -> requests.Response:
        logger.debug(f"{method} {artifact.location}")
        return self.session.request(
            method,
            artifact.location,
            auth=self._auth(artifact),
            timeout=REQUEST_TIMEOUT,
            **kwargs
        )

    def exists(self, artifact: RepositoryArtifact) -> bool:
        """Check whether an artifact is present."""
        if artifact.repository.is_local():
            return Path(artifact.location).is_file()
        return self.artifact_info(artifact) is not None

    def read_bytes(self, artifact: RepositoryArtifact) -> Optional[bytes]:
        """Read the whole artifact, None when it doesn't exist."""
        if artifact.repository.is_local():
            try:
                return Path(artifact.location).read_bytes()
            except FileNotFoundError:
                return None

        response = self._request("GET", artifact)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.content

    def read_string(self, artifact: RepositoryArtifact) -> Optional[str]:
        content = self.read_bytes(artifact)
        if content is None:
            return None
        return content.decode("utf-8")

    def artifact_info(self, artifact: RepositoryArtifact) -> Optional[ArtifactInfo]:
        """Size and modification time of an artifact, None when it doesn't exist."""
        if artifact.repository.is_local():
            path = Path(artifact.location)
            if not path.is_file():
                return None
            stat = path.stat()
            return ArtifactInfo(stat.st_size, stat.st_mtime)

        response = self._request("HEAD", artifact, allow_redirects=True)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        length = response.headers.get("Content-Length")
        return ArtifactInfo(
            size=int(length) if length and length.isdigit() else None,
            last_modified=_parse_http_date(response.headers.get("Last-Modified")),
        )

    def download(self, artifact: RepositoryArtifact, destination: Path) -> bool:
        """Download an artifact into a file.

        The content is streamed into a temporary file next to the destination
        and renamed into place once complete. The file's modification time is
        set to what the repository reports.

        Args:
            artifact: The artifact to fetch.
            destination: The file to create or replace.

        Returns:
            False when the artifact doesn't exist, True otherwise.
        """
        destination = Path(destination)
        response = self._request("GET", artifact, stream=True)
        try:
            if response.status_code == 404:
                return False
            response.raise_for_status()

            fd, temp_name = tempfile.mkstemp(prefix=f".{destination.name}.", dir=destination.parent)
            try:
                with os.fdopen(fd, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                os.replace(temp_name, destination)
            except BaseException:
                if os.path.exists(temp_name):
                    os.unlink(temp_name)
                raise

            last_modified = _parse_http_date(response.headers.get("Last-Modified"))
            if last_modified is not None:
                os.utime(destination, (last_modified, last_modified))
            return True
        finally:
            response.close()

    def transfer_into_directory(self, artifact: RepositoryArtifact, directory: Path) -> bool:
        """Place an artifact into a directory unless an identical copy is already there.

        Args:
            artifact: The artifact to transfer.
            directory: Existing, writable target directory.

        Returns:
            False when the artifact doesn't exist, True when it was transferred
            or was already up to date.

        Raises:
            ValueError: If the directory can't receive files.
        """
        directory = Path(directory)
        if not directory.exists():
            raise ValueError(f"The directory '{directory}' doesn't exist.")
        if not directory.is_dir():
            raise ValueError(f"The destination '{directory}' is not a directory.")
        if not os.access(directory, os.W_OK):
            raise ValueError(f"The directory '{directory}' can't be written to.")

        destination = directory / artifact.file_name
        if artifact.repository.is_local():
            return self._copy_local(artifact, destination)

        if destination.exists() and self._is_unchanged(artifact, destination):
            logger.info(f"Downloading: {artifact.location} ... exists")
            return True
        if self.download(artifact, destination):
            logger.info(f"Downloading: {artifact.location} ... done")
            return True
        logger.info(f"Downloading: {artifact.location} ... not found")
        return False

    def _copy_local(self, artifact: RepositoryArtifact, destination: Path) -> bool:
        source = Path(artifact.location)
        if not source.is_file():
            logger.info(f"Copying: {source} ... not found")
            return False
        if destination.exists():
            source_stat = source.stat()
            target_stat = destination.stat()
            if (source_stat.st_size == target_stat.st_size
                    and int(source_stat.st_mtime) == int(target_stat.st_mtime)):
                logger.info(f"Copying: {source} ... exists")
                return True

        fd, temp_name = tempfile.mkstemp(prefix=f".{destination.name}.", dir=destination.parent)
        os.close(fd)
        try:
            shutil.copy2(source, temp_name)
            os.replace(temp_name, destination)
        except BaseException:
            if os.path.exists(temp_name):
                os.unlink(temp_name)
            raise
        logger.info(f"Copying: {source} ... done")
        return True

    def _is_unchanged(self, artifact: RepositoryArtifact, destination: Path) -> bool:
        info = self.artifact_info(artifact)
        if info is None:
            return False
        stat = destination.stat()
        if info.size is not None and info.last_modified is not None:
            return info.size == stat.st_size and int(info.last_modified) == int(stat.st_mtime)
        if info.size is not None and info.size != stat.st_size:
            return False

        for algorithm, extension in CHECKSUMS:
            published = self.read_string(artifact.append_path(extension))
            if published and published.split():
                return published.split()[0].lower() == _file_digest(destination, algorithm)
        return False

    def close(self):
        """Close the session and clean up resources."""
        self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


class CachingArtifactRetriever(ArtifactRetriever):
    """Retriever memoizing reads and existence checks for its lifetime."""

    def __init__(self):
        super().__init__()
        self._contents: Dict[RepositoryArtifact, Optional[str]] = {}
        self._existence: Dict[RepositoryArtifact, bool] = {}

    def read_string(self, artifact: RepositoryArtifact) -> Optional[str]:
        if artifact not in self._contents:
            self._contents[artifact] = super().read_string(artifact)
        return self._contents[artifact]

    def exists(self, artifact: RepositoryArtifact) -> bool:
        if artifact not in self._existence:
            self._existence[artifact] = super().exists(artifact)
        return self._existence[artifact]
