"""Resolution of a single dependency against a list of repositories."""

import logging
from collections import deque
from pathlib import Path
from typing import Deque, Dict, FrozenSet, List, Optional, Sequence, Tuple

import requests

from .dependency_set import DependencySet
from .exceptions import DependencyError, DocumentParseError
from .metadata import MavenMetadata, parse_maven_metadata
from .models import Dependency, Scope, TYPE_JAR, normalize_type
from .pom import MavenPom, PomDependency
from .repository import Repository, RepositoryArtifact
from .resolution import VersionResolution
from .retriever import ArtifactRetriever
from .version import UNKNOWN, Version

logger = logging.getLogger(__name__)

# Declarations in these scopes only matter to the artifact that declares them.
NON_TRANSITIVE_SCOPES = (Scope.PROVIDED, Scope.TEST)


class DependencyResolver:
    """Resolves one dependency: its versions, its descriptor and its artifact files.

    Args:
        resolution: Version overrides, applied to the dependency and to every
            transitive dependency.
        retriever: Reads artifacts from the repositories.
        repositories: Repositories to try, in order.
        dependency: The dependency to resolve.
    """

    def __init__(self, resolution: Optional[VersionResolution], retriever: ArtifactRetriever,
                 repositories: Optional[Sequence[Repository]], dependency: Dependency):
        self.resolution = resolution or VersionResolution.dummy()
        self.retriever = retriever
        self.repositories: List[Repository] = list(repositories or [])
        self.dependency = self.resolution.override_dependency(dependency)
        self._metadata: Optional[MavenMetadata] = None
        self._snapshot_metadata: Optional[MavenMetadata] = None

    def _for(self, dependency: Dependency) -> 'DependencyResolver':
        return DependencyResolver(self.resolution, self.retriever, self.repositories, dependency)

    def exists(self) -> bool:
        """Check whether any repository carries the dependency."""
        try:
            metadata = self.get_maven_metadata()
            if self.dependency.version == UNKNOWN or self.dependency.version in metadata.versions:
                return True
        except DependencyError as e:
            logger.debug(f"No usable metadata for {self.dependency}: {e}")

        if self.dependency.version == UNKNOWN:
            return False
        try:
            return any(self.retriever.exists(artifact) for artifact in self._pom_artifacts())
        except (requests.RequestException, OSError, DependencyError) as e:
            logger.debug(f"Unable to check {self.dependency}: {e}")
            return False

    def resolve_version(self) -> Version:
        """The declared version, or the latest one when none was declared."""
        version = self.dependency.version
        if version == UNKNOWN:
            return self.latest_version()
        return version

    def list_versions(self) -> List[Version]:
        return list(self.get_maven_metadata().versions)

    def latest_version(self) -> Version:
        metadata = self.get_maven_metadata()
        if metadata.latest != UNKNOWN:
            return metadata.latest
        return max(metadata.versions, default=UNKNOWN)

    def release_version(self) -> Version:
        metadata = self.get_maven_metadata()
        if metadata.release != UNKNOWN:
            return metadata.release
        return max(metadata.versions, default=UNKNOWN)

    def get_direct_dependencies(self, *scopes: Scope) -> DependencySet:
        """The dependencies this dependency's POM declares for the given scopes."""
        result = DependencySet()
        if not scopes:
            return result
        for declared in self.get_maven_pom(self.dependency).get_dependencies(*scopes):
            result.add(self.resolution.override_dependency(declared.convert_to_dependency()))
        return result

    def get_all_dependencies(self, *scopes: Scope) -> DependencySet:
        """Transitive closure of this dependency over the given scopes.

        The dependency itself comes first, followed by its dependencies in
        breadth-first order. Provided and test declarations are never
        followed. When an artifact is reached again, the higher version is
        kept but the artifact isn't expanded a second time. While it still
        waits in the queue, a higher version takes its queue slot and is the
        one expanded.
        """
        result = DependencySet()
        result.add(self.dependency)

        scopes = tuple(scope for scope in scopes if scope not in NON_TRANSITIVE_SCOPES)
        if not scopes:
            return result

        # One queue slot per identity; the pending entry holds the highest version seen so far.
        queue: Deque[tuple] = deque()
        pending: Dict[tuple, PomDependency] = {}
        self._enqueue_children(self.dependency, scopes, queue, pending)
        while queue:
            candidate = pending.pop(queue.popleft())
            dependency = self._override(candidate)
            if dependency in result:
                result.add(dependency)
                continue
            result.add(dependency)
            self._enqueue_children(dependency, scopes, queue, pending)

        logger.debug(f"Resolved {len(result)} dependencies for {self.dependency}")
        return result

    def _override(self, declared: PomDependency) -> Dependency:
        return self.resolution.override_dependency(declared.convert_to_dependency())

    def _enqueue_children(self, node: Dependency, scopes: Tuple[Scope, ...],
                          queue: Deque[tuple], pending: Dict[tuple, PomDependency]) -> None:
        children = self._for(node).get_maven_pom(node).get_dependencies(*scopes)
        for child in children:
            if self._is_excluded(node, child):
                logger.debug(f"Excluding {child.group_id}:{child.artifact_id} below {node}")
                continue
            key = child.key()
            queued = pending.get(key)
            if queued is None:
                pending[key] = child
                queue.append(key)
            elif self._override(child).version.compare_to(self._override(queued).version) > 0:
                logger.debug(f"Queued {queued} superseded by {child}")
                pending[key] = child

    def _is_excluded(self, node: Dependency, child: PomDependency) -> bool:
        ancestor: Optional[Dependency] = node
        while ancestor is not None:
            if ancestor.exclusions.matches(child):
                return True
            ancestor = ancestor.parent
        return self.dependency.exclusions.matches(child)

    def get_maven_metadata(self) -> MavenMetadata:
        """Metadata listing every published version, from the first repository that has it."""
        if self._metadata is None:
            self._metadata = self._read_metadata(self._metadata_artifacts())
        return self._metadata

    def get_snapshot_maven_metadata(self) -> MavenMetadata:
        """Metadata of the snapshot version, carrying the timestamped build."""
        if self._snapshot_metadata is None:
            self._snapshot_metadata = self._read_metadata(self._snapshot_metadata_artifacts())
        return self._snapshot_metadata

    def _read_metadata(self, artifacts: List[RepositoryArtifact]) -> MavenMetadata:
        artifact, content = self._read_first(artifacts)
        try:
            return parse_maven_metadata(content)
        except DocumentParseError as e:
            raise DependencyError.metadata_parse_error(self.dependency, artifact.location, e.errors) from e

    def get_maven_pom(self, owner: Optional[Dependency] = None) -> MavenPom:
        """The flattened POM of this dependency.

        Args:
            owner: Becomes the parent of every declared dependency.
        """
        return self._load_pom(owner, frozenset())

    def _load_pom(self, owner: Optional[Dependency], lineage: FrozenSet[str]) -> MavenPom:
        coordinate = f"{self.dependency.group_id}:{self.dependency.artifact_id}:{self.dependency.version}"
        artifacts = self._pom_artifacts()
        if coordinate in lineage:
            raise DependencyError.descriptor_parse_error(
                self.dependency, artifacts[0].location if artifacts else "",
                [f"Cyclic parent or import chain through {coordinate}"])
        lineage = lineage | {coordinate}

        def load(related: Dependency) -> MavenPom:
            return self._for(related)._load_pom(owner, lineage)

        artifact, content = self._read_first(artifacts)
        try:
            return MavenPom.parse(content, owner, load)
        except DocumentParseError as e:
            raise DependencyError.descriptor_parse_error(self.dependency, artifact.location, e.errors) from e

    def _read_first(self, artifacts: List[RepositoryArtifact]) -> Tuple[RepositoryArtifact, str]:
        for artifact in artifacts:
            try:
                content = self.retriever.read_string(artifact)
            except (requests.RequestException, OSError, UnicodeDecodeError) as e:
                raise DependencyError.retrieval_error(self.dependency, artifact.location) from e
            if content is not None:
                return artifact, content
            logger.debug(f"Not found: {artifact.location}")
        raise DependencyError.not_found(self.dependency, ", ".join(a.location for a in artifacts))

    def _artifact_base(self, repository: Repository) -> RepositoryArtifact:
        return RepositoryArtifact(
            repository,
            repository.artifact_location(self.dependency.group_id, self.dependency.artifact_id),
        )

    def _metadata_artifacts(self) -> List[RepositoryArtifact]:
        return [self._artifact_base(repository).append_path(repository.metadata_name())
                for repository in self.repositories]

    def _snapshot_metadata_artifacts(self) -> List[RepositoryArtifact]:
        version = self.resolve_version()
        return [self._artifact_base(repository).append_path(f"{version}/{repository.metadata_name()}")
                for repository in self.repositories]

    def _published_version(self) -> Version:
        version = self.resolve_version()
        if version.is_snapshot():
            snapshot = self.get_snapshot_maven_metadata().snapshot
            if snapshot != UNKNOWN:
                return snapshot
        return version

    def _pom_artifacts(self) -> List[RepositoryArtifact]:
        if not self.repositories:
            return []
        version = self.resolve_version()
        published = self._published_version()
        path = f"{version}/{self.dependency.artifact_id}-{published}.pom"
        return [self._artifact_base(repository).append_path(path) for repository in self.repositories]

    def get_transfer_locations(self) -> List[str]:
        """Every location the artifact file may be downloaded from, in repository order."""
        return [artifact.location for artifact in self._transfer_artifacts()]

    def _transfer_artifacts(self) -> List[RepositoryArtifact]:
        if not self.repositories:
            return []
        version = self.resolve_version()
        published = self._published_version()
        name = f"{self.dependency.artifact_id}-{published}"
        if self.dependency.classifier:
            name += f"-{self.dependency.classifier}"
        extension = normalize_type(self.dependency.type) or TYPE_JAR
        path = f"{version}/{name}.{extension}"
        return [self._artifact_base(repository).append_path(path) for repository in self.repositories]

    def transfer_into_directory(self, directory: Path) -> Optional[RepositoryArtifact]:
        """Transfer the artifact file from the first repository that has it.

        Returns:
            The artifact that was transferred or already up to date, None
            when no repository has it.
        """
        for artifact in self._transfer_artifacts():
            try:
                if self.retriever.transfer_into_directory(artifact, directory):
                    return artifact
            except (requests.RequestException, OSError) as e:
                raise DependencyError.transfer_error(self.dependency, artifact.location, Path(directory)) from e
        return None
