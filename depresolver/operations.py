"""Operations combining resolution, caching and transfer."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .cache import ResolverCache
from .config import HierarchicalProperties
from .dependency_set import DependencyScopes, DependencySet, download_classifiers
from .models import Dependency, Scope
from .repository import Repository
from .resolution import VersionResolution
from .resolver import DependencyResolver
from .retriever import ArtifactRetriever

logger = logging.getLogger(__name__)

NO_DEPENDENCIES = "no dependencies\n"

# Scopes followed while rendering the tree of each declared scope.
TREE_SCOPES = {
    Scope.COMPILE: (Scope.COMPILE,),
    Scope.PROVIDED: (Scope.COMPILE, Scope.RUNTIME),
    Scope.RUNTIME: (Scope.COMPILE, Scope.RUNTIME),
    Scope.TEST: (Scope.COMPILE, Scope.RUNTIME),
}


def _titled(title: str, tree: str) -> str:
    return f"{title}:\n{tree or NO_DEPENDENCIES}"


@dataclass
class DependencyTreeOperation:
    """Renders the dependency trees of the extensions and of every project scope.

    With a ``cache_dir`` the trees are served from the fingerprint cache as
    long as the inputs of their domain didn't change.
    """

    retriever: ArtifactRetriever
    properties: Optional[HierarchicalProperties] = None
    repositories: List[Repository] = field(default_factory=list)
    dependencies: DependencyScopes = field(default_factory=DependencyScopes)
    extension_properties: Optional[HierarchicalProperties] = None
    extension_repositories: List[Repository] = field(default_factory=list)
    extension_dependencies: DependencyScopes = field(default_factory=DependencyScopes)
    cache_dir: Optional[Path] = None
    offline: bool = False
    dependency_tree: str = field(default="", init=False)

    def execute(self) -> str:
        """Compute every tree and return them joined, one blank line after each."""
        if self.offline:
            logger.warning("Offline mode: dependency-tree is disabled")
            return ""

        trees = [self._extensions_tree()]
        trees.extend(self._dependencies_trees())
        self.dependency_tree = "".join(f"{tree}\n" for tree in trees)
        return self.dependency_tree

    def _extensions_tree(self) -> str:
        resolution = VersionResolution(self.extension_properties)
        extensions = self.extension_dependencies.scope(Scope.COMPILE)
        local_artifacts = extensions.local_dependencies
        cache = None
        if self.cache_dir is not None:
            cache = ResolverCache(self.cache_dir, resolution)
            cache.fingerprint_extensions(
                [str(repository) for repository in self.extension_repositories],
                [str(dependency) for dependency in extensions],
                local_artifacts=local_artifacts,
            )
            cached = cache.get_cached_extensions_dependency_tree()
            if cached is not None:
                logger.debug("Using cached extensions dependency tree")
                return cached

        tree = _titled("extensions", extensions.generate_transitive_dependency_tree(
            resolution, self.retriever, self.extension_repositories, Scope.COMPILE, Scope.RUNTIME))
        if cache is not None:
            cache.cache_extensions_dependency_tree(tree)
            cache.write_cache([Path(local.path) for local in local_artifacts])
        return tree

    def _dependencies_trees(self) -> List[str]:
        resolution = VersionResolution(self.properties)
        cache = None
        if self.cache_dir is not None:
            cache = ResolverCache(self.cache_dir, resolution)
            cache.fingerprint_dependencies(self.repositories, self.dependencies)

        trees = []
        write_cache = False
        for scope, transitive_scopes in TREE_SCOPES.items():
            tree = cache.get_cached_dependencies_dependency_tree(scope) if cache is not None else None
            if tree is None:
                tree = _titled(scope.value, self.dependencies.scope(scope).generate_transitive_dependency_tree(
                    resolution, self.retriever, self.repositories, *transitive_scopes))
                if cache is not None:
                    cache.cache_dependencies_dependency_tree(scope, tree)
                    write_cache = True
            trees.append(tree)

        if write_cache:
            cache.write_cache()
        return trees


@dataclass
class LibDirectoriesOperation:
    """Base of the operations working on one library directory per scope.

    A scope without a directory is skipped.
    """

    retriever: ArtifactRetriever
    properties: Optional[HierarchicalProperties] = None
    repositories: List[Repository] = field(default_factory=list)
    dependencies: DependencyScopes = field(default_factory=DependencyScopes)
    lib_compile_directory: Optional[Path] = None
    lib_provided_directory: Optional[Path] = None
    lib_runtime_directory: Optional[Path] = None
    lib_standalone_directory: Optional[Path] = None
    lib_test_directory: Optional[Path] = None

    @classmethod
    def for_lib_directory(cls, retriever: ArtifactRetriever, lib_directory: Path, **kwargs):
        """An operation using ``<lib>/compile``, ``<lib>/runtime`` and so on."""
        lib_directory = Path(lib_directory)
        return cls(
            retriever,
            lib_compile_directory=lib_directory / "compile",
            lib_provided_directory=lib_directory / "provided",
            lib_runtime_directory=lib_directory / "runtime",
            lib_standalone_directory=lib_directory / "standalone",
            lib_test_directory=lib_directory / "test",
            **kwargs
        )

    def _directories(self) -> Dict[Scope, Optional[Path]]:
        return {
            Scope.COMPILE: self.lib_compile_directory,
            Scope.PROVIDED: self.lib_provided_directory,
            Scope.RUNTIME: self.lib_runtime_directory,
            Scope.STANDALONE: self.lib_standalone_directory,
            Scope.TEST: self.lib_test_directory,
        }

    def _resolvers(self, resolution: VersionResolution) -> Dict[Scope, Callable[[], DependencySet]]:
        return {
            Scope.COMPILE: lambda: self.dependencies.resolve_compile_dependencies(
                resolution, self.retriever, self.repositories),
            Scope.PROVIDED: lambda: self.dependencies.resolve_provided_dependencies(
                resolution, self.retriever, self.repositories),
            Scope.RUNTIME: lambda: self.dependencies.resolve_runtime_dependencies(
                resolution, self.retriever, self.repositories),
            Scope.STANDALONE: self.dependencies.resolve_standalone_dependencies,
            Scope.TEST: lambda: self.dependencies.resolve_test_dependencies(
                resolution, self.retriever, self.repositories),
        }


@dataclass
class DownloadOperation(LibDirectoriesOperation):
    """Resolves every scope and transfers the artifacts into one directory per scope."""

    download_sources: bool = False
    download_javadoc: bool = False
    cache_dir: Optional[Path] = None

    def execute(self) -> Dict[Scope, list]:
        """Download everything, returning the transferred artifacts of each scope.

        When the fingerprint of the dependencies and the download flags match
        the cache and every directory still exists, nothing is resolved.
        """
        resolution = VersionResolution(self.properties)
        cache = None
        if self.cache_dir is not None:
            cache = ResolverCache(self.cache_dir, resolution)
            cache.fingerprint_dependencies(self.repositories, self.dependencies,
                                           self.download_sources, self.download_javadoc)
            directories = [d for d in self._directories().values() if d is not None]
            if (cache.is_dependencies_cache_valid(self.download_sources, self.download_javadoc)
                    and all(Path(d).is_dir() for d in directories)):
                logger.info("Dependencies are up to date.")
                return {}

        resolvers = self._resolvers(resolution)
        results = {}
        for scope, directory in self._directories().items():
            if directory is None:
                continue
            results[scope] = self._download(resolution, Path(directory), resolvers[scope]())

        if cache is not None:
            cache.cache_dependencies_downloads(self.download_sources, self.download_javadoc)
            cache.write_cache()
        logger.info("Downloading finished successfully.")
        return results

    def _download(self, resolution: VersionResolution, directory: Path, dependencies: DependencySet) -> list:
        directory.mkdir(parents=True, exist_ok=True)
        classifiers = download_classifiers(self.download_sources, self.download_javadoc)
        return dependencies.transfer_into_directory(
            resolution, self.retriever, self.repositories, directory, *classifiers)


@dataclass
class PurgeOperation(LibDirectoriesOperation):
    """Deletes the files of each scope directory that its resolved dependencies no longer produce.

    Sources and javadoc jars are kept only when they are preserved explicitly.
    """

    preserve_sources: bool = False
    preserve_javadoc: bool = False

    def execute(self) -> Dict[Scope, List[Path]]:
        """Purge every scope directory, returning the deleted files of each scope."""
        resolution = VersionResolution(self.properties)
        resolvers = self._resolvers(resolution)
        results = {}
        for scope, directory in self._directories().items():
            if directory is None or not Path(directory).is_dir():
                continue
            results[scope] = self._purge(resolution, Path(directory), resolvers[scope]())
        logger.info("Purging finished successfully.")
        return results

    def _purge(self, resolution: VersionResolution, directory: Path, dependencies: DependencySet) -> List[Path]:
        classifiers = download_classifiers(self.preserve_sources, self.preserve_javadoc)
        keep = dependencies.transfer_file_names(resolution, self.retriever, self.repositories, *classifiers)
        deleted = []
        for path in sorted(directory.iterdir()):
            if path.name in keep or not path.is_file():
                continue
            logger.info(f"Deleting {path.name} from {directory.name}")
            path.unlink()
            deleted.append(path)
        return deleted


@dataclass
class UpdatesOperation:
    """Finds the declared dependencies that have a newer version published."""

    retriever: ArtifactRetriever
    properties: Optional[HierarchicalProperties] = None
    repositories: List[Repository] = field(default_factory=list)
    dependencies: DependencyScopes = field(default_factory=DependencyScopes)
    updates: DependencyScopes = field(default_factory=DependencyScopes, init=False)

    def execute(self) -> DependencyScopes:
        """Collect, per scope, the latest version of every outdated dependency."""
        resolution = VersionResolution(self.properties)
        result = DependencyScopes()
        for scope, dependencies in self.dependencies.items():
            for dependency in dependencies:
                resolver = DependencyResolver(resolution, self.retriever, self.repositories, dependency)
                latest = resolver.latest_version()
                if latest.compare_to(resolver.dependency.version) > 0:
                    logger.debug(f"{dependency} can be updated to {latest}")
                    result.scope(scope).include(Dependency(
                        dependency.group_id, dependency.artifact_id, latest,
                        dependency.classifier, dependency.type))

        if not result:
            logger.info("No dependency updates found.")
        self.updates = result
        return result
