"""Ordered dependency sets, their transitive resolution, tree rendering and transfer."""

import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Union

from .models import CLASSIFIER_JAVADOC, CLASSIFIER_SOURCES, Dependency, LocalDependency, Scope
from .repository import Repository, RepositoryArtifact
from .resolution import VersionResolution
from .retriever import ArtifactRetriever

logger = logging.getLogger(__name__)

BRANCH = "├─ "
LAST_BRANCH = "└─ "
CONTINUATION = "│  "
EMPTY = "   "


def _variants(dependency: Dependency, classifiers: Sequence[str]) -> List[Dependency]:
    """The dependency followed by the classifier variants it doesn't exclude."""
    variants = [dependency]
    for classifier in classifiers:
        if classifier and classifier not in dependency.excluded_classifiers:
            variants.append(dependency.with_classifier(classifier))
    return variants


class DependencySet:
    """Insertion-ordered set of dependencies keyed by artifact identity.

    Adding an artifact that is already present keeps the higher of both
    versions. The replacement happens in place, so iteration order always
    reflects the first time an artifact was added.
    """

    def __init__(self, dependencies: Optional[Iterable[Dependency]] = None):
        self._dependencies: Dict[Dependency, Dependency] = {}
        self._local_dependencies: Dict[LocalDependency, None] = {}
        if dependencies is not None:
            self.add_all(dependencies)

    def include(self, dependency: Union[Dependency, LocalDependency]) -> 'DependencySet':
        """Chainable add that also accepts local artifacts."""
        if isinstance(dependency, LocalDependency):
            self._local_dependencies[dependency] = None
        else:
            self.add(dependency)
        return self

    def add(self, dependency: Dependency) -> bool:
        """Add a dependency, resolving a conflict towards the higher version.

        Returns:
            True when the set changed.
        """
        existing = self._dependencies.get(dependency)
        if existing is None:
            self._dependencies[dependency] = dependency
            return True
        if dependency.version > existing.version:
            # assignment to an existing key keeps its position
            self._dependencies[dependency] = dependency
            return True
        return False

    def add_all(self, dependencies: Iterable[Dependency]) -> bool:
        changed = False
        for dependency in dependencies:
            changed = self.add(dependency) or changed
        if isinstance(dependencies, DependencySet):
            self._local_dependencies.update(dependencies._local_dependencies)
        return changed

    def get(self, dependency: Dependency) -> Optional[Dependency]:
        """The stored dependency with the same identity."""
        return self._dependencies.get(dependency)

    def remove(self, dependency: Dependency) -> bool:
        return self._dependencies.pop(dependency, None) is not None

    def remove_all(self, dependencies: Iterable[Dependency]) -> bool:
        changed = False
        for dependency in list(dependencies):
            changed = self.remove(dependency) or changed
        return changed

    @property
    def local_dependencies(self) -> List[LocalDependency]:
        return list(self._local_dependencies)

    def __iter__(self) -> Iterator[Dependency]:
        return iter(list(self._dependencies.values()))

    def __len__(self) -> int:
        return len(self._dependencies)

    def __contains__(self, dependency) -> bool:
        return dependency in self._dependencies

    def is_empty(self) -> bool:
        return not self._dependencies and not self._local_dependencies

    def __repr__(self):
        return f"DependencySet({[str(d) for d in self]!r})"

    def generate_transitive_dependency_tree(self, resolution: Optional[VersionResolution],
                                            retriever: ArtifactRetriever,
                                            repositories: Sequence[Repository],
                                            *scopes: Scope) -> str:
        """Resolve every member transitively and render the combined tree."""
        from .resolver import DependencyResolver

        combined = DependencySet()
        for dependency in self:
            resolved = DependencyResolver(resolution, retriever, repositories, dependency)
            combined.add_all(resolved.get_all_dependencies(*scopes))
        return combined.generate_dependency_tree()

    def generate_dependency_tree(self) -> str:
        """Render the set as a tree following each member's parent.

        Members without a parent, or whose parent isn't part of the set, are
        roots. Every line ends with a newline.
        """
        children: Dict[Dependency, List[Dependency]] = {}
        roots: List[Dependency] = []
        for dependency in self:
            if dependency.parent is None or dependency.parent not in self:
                roots.append(dependency)
            else:
                children.setdefault(dependency.parent, []).append(dependency)

        lines: List[str] = []
        visited = set()

        def render(dependency: Dependency, prefix: str, is_last: bool) -> None:
            lines.append(f"{prefix}{LAST_BRANCH if is_last else BRANCH}{dependency}")
            if dependency in visited:
                return
            visited.add(dependency)
            nested = children.get(dependency, [])
            child_prefix = prefix + (EMPTY if is_last else CONTINUATION)
            for i, child in enumerate(nested):
                render(child, child_prefix, i == len(nested) - 1)

        for i, root in enumerate(roots):
            render(root, "", i == len(roots) - 1)
        return "".join(line + "\n" for line in lines)

    def transfer_into_directory(self, resolution: Optional[VersionResolution],
                                retriever: ArtifactRetriever,
                                repositories: Sequence[Repository],
                                directory: Path,
                                *classifiers: str) -> List[RepositoryArtifact]:
        """Transfer every member, plus the requested classifier variants, into a directory.

        Files already present and unchanged are left alone. A classifier
        variant that isn't published is skipped silently.

        Returns:
            The transferred or verified artifacts in set order, one per file name.
        """
        from .resolver import DependencyResolver

        directory = Path(directory)
        transferred: List[RepositoryArtifact] = []
        file_names = set()
        for dependency in self:
            for variant in _variants(dependency, classifiers):
                resolver = DependencyResolver(resolution, retriever, repositories, variant)
                artifact = resolver.transfer_into_directory(directory)
                if artifact is None:
                    if variant is dependency:
                        logger.warning(f"No repository has {variant}")
                    continue
                if artifact.file_name in file_names:
                    continue
                file_names.add(artifact.file_name)
                transferred.append(artifact)

        for local in self._local_dependencies:
            path = Path(local.path).absolute()
            artifact = RepositoryArtifact(Repository(str(path.parent)), str(path))
            if artifact.file_name in file_names:
                continue
            if retriever.transfer_into_directory(artifact, directory):
                file_names.add(artifact.file_name)
                transferred.append(artifact)
            else:
                logger.warning(f"Local dependency {local} doesn't exist")

        logger.info(f"Transferred {len(transferred)} artifacts into {directory}")
        return transferred

    def transfer_file_names(self, resolution: Optional[VersionResolution],
                            retriever: ArtifactRetriever,
                            repositories: Sequence[Repository],
                            *classifiers: str) -> Set[str]:
        """File names a transfer of this set may produce, classifier variants included."""
        from .resolver import DependencyResolver

        file_names = set()
        for dependency in self:
            for variant in _variants(dependency, classifiers):
                resolver = DependencyResolver(resolution, retriever, repositories, variant)
                for location in resolver.get_transfer_locations():
                    file_names.add(location.rsplit("/", 1)[-1])
        for local in self._local_dependencies:
            file_names.add(Path(local.path).name)
        return file_names


class DependencyScopes(dict):
    """Dependency sets per scope."""

    def scope(self, scope: Scope) -> DependencySet:
        """The set of a scope, created when missing."""
        return self.setdefault(scope, DependencySet())

    def include(self, other: 'DependencyScopes') -> 'DependencyScopes':
        for scope, dependencies in other.items():
            self.scope(scope).add_all(dependencies)
        return self

    def _resolve(self, resolution: Optional[VersionResolution], retriever: ArtifactRetriever,
                 repositories: Sequence[Repository], scopes: Sequence[Scope],
                 transitive_scopes: Sequence[Scope],
                 excluded: Optional[DependencySet] = None) -> DependencySet:
        from .resolver import DependencyResolver

        result = DependencySet()
        for scope in scopes:
            dependencies = self.get(scope)
            if dependencies is None:
                continue
            for local in dependencies.local_dependencies:
                result.include(local)
            for dependency in dependencies:
                resolver = DependencyResolver(resolution, retriever, repositories, dependency)
                result.add_all(resolver.get_all_dependencies(*transitive_scopes))
        if excluded is not None:
            result.remove_all(excluded)
        return result

    def resolve_compile_dependencies(self, resolution: Optional[VersionResolution],
                                     retriever: ArtifactRetriever,
                                     repositories: Sequence[Repository]) -> DependencySet:
        return self._resolve(resolution, retriever, repositories,
                             (Scope.PROVIDED, Scope.COMPILE), (Scope.COMPILE,))

    def resolve_provided_dependencies(self, resolution: Optional[VersionResolution],
                                      retriever: ArtifactRetriever,
                                      repositories: Sequence[Repository]) -> DependencySet:
        return self._resolve(resolution, retriever, repositories,
                             (Scope.PROVIDED,), (Scope.COMPILE, Scope.RUNTIME))

    def resolve_runtime_dependencies(self, resolution: Optional[VersionResolution],
                                     retriever: ArtifactRetriever,
                                     repositories: Sequence[Repository]) -> DependencySet:
        """Runtime closure without whatever compile resolution already brings."""
        compile_dependencies = self.resolve_compile_dependencies(resolution, retriever, repositories)
        return self._resolve(resolution, retriever, repositories,
                             (Scope.PROVIDED, Scope.COMPILE, Scope.RUNTIME),
                             (Scope.COMPILE, Scope.RUNTIME),
                             compile_dependencies)

    def resolve_standalone_dependencies(self) -> DependencySet:
        """Standalone dependencies only ever come from the local file system."""
        result = DependencySet()
        dependencies = self.get(Scope.STANDALONE)
        if dependencies is None:
            return result
        for local in dependencies.local_dependencies:
            result.include(local)
        for dependency in dependencies:
            logger.warning(f"Ignoring standalone dependency {dependency}, only local artifacts are allowed")
        return result

    def resolve_test_dependencies(self, resolution: Optional[VersionResolution],
                                  retriever: ArtifactRetriever,
                                  repositories: Sequence[Repository]) -> DependencySet:
        return self._resolve(resolution, retriever, repositories,
                             (Scope.TEST,), (Scope.COMPILE, Scope.RUNTIME))


def download_classifiers(sources: bool, javadoc: bool) -> List[str]:
    """Classifier variants to transfer next to the main artifacts."""
    classifiers = []
    if sources:
        classifiers.append(CLASSIFIER_SOURCES)
    if javadoc:
        classifiers.append(CLASSIFIER_JAVADOC)
    return classifiers
