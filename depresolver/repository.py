"""Maven repository locations and the artifacts inside them."""

import hashlib
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from .config import (
    PROPERTY_MAVEN_REPO_LOCAL,
    PROPERTY_REPOSITORY_PREFIX,
    PROPERTY_USER_HOME,
    HierarchicalProperties,
)

METADATA_LOCAL = "maven-metadata-local.xml"
METADATA_REMOTE = "maven-metadata.xml"
FILE_SCHEME = "file:"

# Mixed into credential digests so the canonical form never equals a plain hash.
CREDENTIAL_SALT = "depresolver-repository:"


def credential_digest(value: str) -> str:
    return hashlib.md5((CREDENTIAL_SALT + value).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Repository:
    """A repository location with optional basic-auth credentials."""

    location: str
    username: Optional[str] = None
    password: Optional[str] = None

    @classmethod
    def resolve(cls, properties: Optional[HierarchicalProperties], location_or_name: str) -> 'Repository':
        """Turn a configured alias, a well-known name or a literal location into a repository.

        Args:
            properties: Configuration holding ``resolver.repo.<name>`` entries.
            location_or_name: Alias, constant name such as ``MAVEN_CENTRAL`` or a location.

        Returns:
            The matching repository.
        """
        if properties is not None:
            key = PROPERTY_REPOSITORY_PREFIX + location_or_name
            if properties.contains(key):
                return cls(
                    properties.get_string(key),
                    properties.get_string(key + ".username"),
                    properties.get_string(key + ".password"),
                )

        if location_or_name == "MAVEN_LOCAL":
            return resolve_maven_local(properties)
        known = KNOWN_REPOSITORIES.get(location_or_name)
        if known is not None:
            return known
        return cls(location_or_name)

    def with_credentials(self, username: Optional[str], password: Optional[str]) -> 'Repository':
        return replace(self, username=username, password=password)

    def is_local(self) -> bool:
        return self.location.startswith(FILE_SCHEME) or os.path.isabs(self.location)

    def _base_location(self) -> str:
        # file:///srv/repo and file:/srv/repo both name /srv/repo
        for prefix in (FILE_SCHEME + "//", FILE_SCHEME):
            if self.location.startswith(prefix):
                return self.location[len(prefix):]
        return self.location

    def artifact_location(self, group_id: str, artifact_id: str) -> str:
        """Base location of an artifact, always ending with a separator."""
        base = self._base_location()
        if not base.endswith("/"):
            base += "/"
        return f"{base}{group_id.replace('.', '/')}/{artifact_id}/"

    def metadata_name(self) -> str:
        return METADATA_LOCAL if self.is_local() else METADATA_REMOTE

    def __str__(self) -> str:
        text = self.location
        if self.username:
            text += ":" + credential_digest(self.username)
            if self.password:
                text += ":" + credential_digest(self.password)
        return text


@dataclass(frozen=True)
class RepositoryArtifact:
    """One concrete location inside a repository."""

    repository: Repository
    location: str

    def append_path(self, path: str) -> 'RepositoryArtifact':
        return RepositoryArtifact(self.repository, self.location + path)

    @property
    def file_name(self) -> str:
        return self.location.rstrip("/").rsplit("/", 1)[-1]

    def __str__(self) -> str:
        return f"{self.repository}:{self.location}"


MAVEN_CENTRAL = Repository("https://repo1.maven.org/maven2/")
SONATYPE_RELEASES = Repository("https://s01.oss.sonatype.org/service/local/staging/deploy/maven2/")
SONATYPE_SNAPSHOTS = Repository("https://s01.oss.sonatype.org/content/repositories/snapshots/")
SONATYPE_SNAPSHOTS_LEGACY = Repository("https://oss.sonatype.org/content/repositories/snapshots/")
APACHE = Repository("https://repo.maven.apache.org/maven2/")
RIFE2_RELEASES = Repository("https://repo.rife2.com/releases/")
RIFE2_SNAPSHOTS = Repository("https://repo.rife2.com/snapshots/")

KNOWN_REPOSITORIES = {
    "MAVEN_CENTRAL": MAVEN_CENTRAL,
    "SONATYPE_RELEASES": SONATYPE_RELEASES,
    "SONATYPE_SNAPSHOTS": SONATYPE_SNAPSHOTS,
    "SONATYPE_SNAPSHOTS_LEGACY": SONATYPE_SNAPSHOTS_LEGACY,
    "APACHE": APACHE,
    "RIFE2_RELEASES": RIFE2_RELEASES,
    "RIFE2_SNAPSHOTS": RIFE2_SNAPSHOTS,
}


def resolve_maven_local(properties: Optional[HierarchicalProperties] = None) -> Repository:
    """The Maven local repository, ``maven.repo.local`` or ``~/.m2/repository``."""
    location = None
    user_home = None
    if properties is not None:
        location = properties.get_string(PROPERTY_MAVEN_REPO_LOCAL)
        user_home = properties.get_string(PROPERTY_USER_HOME)
    if not location:
        home = Path(user_home) if user_home else Path.home()
        location = str(home / ".m2" / "repository")
    return Repository(location)
