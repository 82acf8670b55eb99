"""Fingerprint cache that lets unchanged resolutions skip the network.

Two domains are tracked independently: ``extensions`` (the tool's own
bootstrap dependencies) and ``dependencies`` (the project's dependencies).
Each domain stores a SHA-1 fingerprint of its inputs, the classifier download
flags and the rendered dependency trees. Whenever a domain's fingerprint no
longer matches, every value cached for that domain is discarded.
"""

import hashlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .dependency_set import DependencyScopes
from .models import TYPE_MODULAR_JAR, LocalDependency, Scope
from .repository import Repository
from .resolution import VersionResolution

logger = logging.getLogger(__name__)

CACHE_FILE = "depresolver.cache"

PROPERTY_SUFFIX_HASH = ".hash"
PROPERTY_SUFFIX_LOCAL = ".local"
PROPERTY_SUFFIX_DOWNLOAD_SOURCES = ".download.sources"
PROPERTY_SUFFIX_DOWNLOAD_JAVADOC = ".download.javadoc"
PROPERTY_SUFFIX_DEPENDENCY_TREE = ".dependency-tree"

PROPERTY_EXTENSIONS_PREFIX = "depresolver.extensions"
PROPERTY_EXTENSIONS_HASH = PROPERTY_EXTENSIONS_PREFIX + PROPERTY_SUFFIX_HASH
PROPERTY_EXTENSIONS_LOCAL = PROPERTY_EXTENSIONS_PREFIX + PROPERTY_SUFFIX_LOCAL
PROPERTY_EXTENSIONS_DOWNLOAD_SOURCES = PROPERTY_EXTENSIONS_PREFIX + PROPERTY_SUFFIX_DOWNLOAD_SOURCES
PROPERTY_EXTENSIONS_DOWNLOAD_JAVADOC = PROPERTY_EXTENSIONS_PREFIX + PROPERTY_SUFFIX_DOWNLOAD_JAVADOC
PROPERTY_EXTENSIONS_DEPENDENCY_TREE = PROPERTY_EXTENSIONS_PREFIX + PROPERTY_SUFFIX_DEPENDENCY_TREE

PROPERTY_DEPENDENCIES_PREFIX = "depresolver.dependencies"
PROPERTY_DEPENDENCIES_HASH = PROPERTY_DEPENDENCIES_PREFIX + PROPERTY_SUFFIX_HASH
PROPERTY_DEPENDENCIES_DOWNLOAD_SOURCES = PROPERTY_DEPENDENCIES_PREFIX + PROPERTY_SUFFIX_DOWNLOAD_SOURCES
PROPERTY_DEPENDENCIES_DOWNLOAD_JAVADOC = PROPERTY_DEPENDENCIES_PREFIX + PROPERTY_SUFFIX_DOWNLOAD_JAVADOC
PROPERTY_DEPENDENCIES_DEPENDENCY_TREE = PROPERTY_DEPENDENCIES_PREFIX + PROPERTY_SUFFIX_DEPENDENCY_TREE


def dependency_tree_property(scope: Scope) -> str:
    return f"{PROPERTY_DEPENDENCIES_DEPENDENCY_TREE}.{scope.value}"


def _digest(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _local_fingerprint(local: LocalDependency) -> str:
    if local.is_modular_jar():
        return f"{local}@{TYPE_MODULAR_JAR}"
    return str(local)


class ResolverCache:
    """Reads and writes the fingerprint cache file in a directory."""

    def __init__(self, cache_dir: Path, resolution: Optional[VersionResolution] = None):
        self.cache_dir = Path(cache_dir)
        self.resolution = resolution or VersionResolution.dummy()
        self._extensions_hash: Optional[str] = None
        self._dependencies_hash: Optional[str] = None
        self._pending: Dict[str, Any] = {}

    @property
    def cache_file(self) -> Path:
        return self.cache_dir / CACHE_FILE

    def _overrides_fingerprint(self) -> str:
        return "\n".join(f"{key}:{value}" for key, value in self.resolution.version_overrides.items())

    def fingerprint_extensions(self, repositories: Iterable[str], extensions: Iterable[str],
                               download_sources: bool = False, download_javadoc: bool = False,
                               local_artifacts: Iterable[LocalDependency] = ()) -> str:
        """Compute the fingerprint of the extensions domain."""
        fingerprint = "\n".join([
            self._overrides_fingerprint(),
            "\n".join(str(repository) for repository in repositories),
            "\n".join(str(extension) for extension in extensions),
            "\n".join(_local_fingerprint(local) for local in local_artifacts),
            _flag(download_sources),
            _flag(download_javadoc),
        ])
        self._extensions_hash = _digest(fingerprint)
        return self._extensions_hash

    def fingerprint_dependencies(self, repositories: Sequence[Repository], dependencies: DependencyScopes,
                                 download_sources: bool = False, download_javadoc: bool = False) -> str:
        """Compute the fingerprint of the dependencies domain."""
        parts = [self._overrides_fingerprint()]
        for repository in repositories:
            parts.append(f"{repository}\n")
        for scope, scope_dependencies in dependencies.items():
            parts.append(f"{scope}\n")
            if scope_dependencies is None:
                continue
            for dependency in scope_dependencies:
                parts.append(f"{dependency}\n")
            for local in scope_dependencies.local_dependencies:
                parts.append(f"{_local_fingerprint(local)}\n")
        parts.append(f"{_flag(download_sources)}\n{_flag(download_javadoc)}\n")
        self._dependencies_hash = _digest("".join(parts))
        return self._dependencies_hash

    def _read(self) -> Dict[str, Any]:
        try:
            with open(self.cache_file, "r", encoding="utf-8") as f:
                properties = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable cache {self.cache_file}: {e}")
            return {}
        if not isinstance(properties, dict):
            logger.warning(f"Ignoring malformed cache {self.cache_file}")
            return {}
        return properties

    @staticmethod
    def _local_files_unchanged(entries: Any) -> bool:
        if not entries:
            return True
        if not isinstance(entries, list):
            return False
        for entry in entries:
            if not isinstance(entry, dict) or "path" not in entry or "modified" not in entry:
                return False
            path = Path(entry["path"])
            try:
                if not os.access(path, os.R_OK) or path.stat().st_mtime_ns != entry["modified"]:
                    return False
            except OSError:
                return False
        return True

    def is_extensions_hash_valid(self) -> bool:
        if self._extensions_hash is None:
            return False
        properties = self._read()
        if properties.get(PROPERTY_EXTENSIONS_HASH) != self._extensions_hash:
            return False
        return self._local_files_unchanged(properties.get(PROPERTY_EXTENSIONS_LOCAL))

    def is_extensions_cache_valid(self, download_sources: bool, download_javadoc: bool) -> bool:
        """Whether the hash and the recorded download flags still match."""
        if not self.is_extensions_hash_valid():
            return False
        properties = self._read()
        return (properties.get(PROPERTY_EXTENSIONS_DOWNLOAD_SOURCES) == download_sources
                and properties.get(PROPERTY_EXTENSIONS_DOWNLOAD_JAVADOC) == download_javadoc)

    def is_dependencies_hash_valid(self) -> bool:
        if self._dependencies_hash is None:
            return False
        return self._read().get(PROPERTY_DEPENDENCIES_HASH) == self._dependencies_hash

    def is_dependencies_cache_valid(self, download_sources: bool, download_javadoc: bool) -> bool:
        """Whether the hash and the recorded download flags still match."""
        if not self.is_dependencies_hash_valid():
            return False
        properties = self._read()
        return (properties.get(PROPERTY_DEPENDENCIES_DOWNLOAD_SOURCES) == download_sources
                and properties.get(PROPERTY_DEPENDENCIES_DOWNLOAD_JAVADOC) == download_javadoc)

    def cache_extensions_downloads(self, download_sources: bool, download_javadoc: bool) -> None:
        self._pending[PROPERTY_EXTENSIONS_DOWNLOAD_SOURCES] = download_sources
        self._pending[PROPERTY_EXTENSIONS_DOWNLOAD_JAVADOC] = download_javadoc

    def cache_extensions_dependency_tree(self, tree: str) -> None:
        self._pending[PROPERTY_EXTENSIONS_DEPENDENCY_TREE] = tree

    def get_cached_extensions_dependency_tree(self) -> Optional[str]:
        """The cached tree, only while the extensions hash is valid."""
        if not self.is_extensions_hash_valid():
            return None
        return self._read().get(PROPERTY_EXTENSIONS_DEPENDENCY_TREE)

    def cache_dependencies_downloads(self, download_sources: bool, download_javadoc: bool) -> None:
        self._pending[PROPERTY_DEPENDENCIES_DOWNLOAD_SOURCES] = download_sources
        self._pending[PROPERTY_DEPENDENCIES_DOWNLOAD_JAVADOC] = download_javadoc

    def cache_dependencies_dependency_tree(self, scope: Scope, tree: str) -> None:
        self._pending[dependency_tree_property(scope)] = tree

    def get_cached_dependencies_dependency_tree(self, scope: Scope) -> Optional[str]:
        """The cached tree of a scope, only while the dependencies hash is valid."""
        if not self.is_dependencies_hash_valid():
            return None
        return self._read().get(dependency_tree_property(scope))

    @staticmethod
    def _discard_domain(properties: Dict[str, Any], prefix: str) -> None:
        for key in [key for key in properties if key.startswith(prefix + ".")]:
            del properties[key]

    def write_cache(self, extensions_local_artifacts: Optional[List[Path]] = None) -> None:
        """Persist everything set on this instance, keeping what was stored before.

        A domain whose fingerprint changed loses all of its previously stored
        values first.

        Args:
            extensions_local_artifacts: Local files the extensions depend on;
                their modification times become part of the extensions cache.
        """
        properties = self._read()

        if (self._extensions_hash is not None
                and properties.get(PROPERTY_EXTENSIONS_HASH) != self._extensions_hash):
            self._discard_domain(properties, PROPERTY_EXTENSIONS_PREFIX)
        if (self._dependencies_hash is not None
                and properties.get(PROPERTY_DEPENDENCIES_HASH) != self._dependencies_hash):
            self._discard_domain(properties, PROPERTY_DEPENDENCIES_PREFIX)

        if self._extensions_hash is not None:
            properties[PROPERTY_EXTENSIONS_HASH] = self._extensions_hash
        if extensions_local_artifacts is not None:
            entries = []
            for artifact in extensions_local_artifacts:
                path = Path(artifact)
                if path.is_file() and os.access(path, os.R_OK):
                    entries.append({"path": str(path.absolute()), "modified": path.stat().st_mtime_ns})
            properties[PROPERTY_EXTENSIONS_LOCAL] = entries
        if self._dependencies_hash is not None:
            properties[PROPERTY_DEPENDENCIES_HASH] = self._dependencies_hash
        properties.update(self._pending)

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(prefix=f".{CACHE_FILE}.", dir=self.cache_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(properties, f, indent=2, sort_keys=True)
            os.replace(temp_name, self.cache_file)
        except BaseException:
            if os.path.exists(temp_name):
                os.unlink(temp_name)
            raise
        logger.debug(f"Wrote cache {self.cache_file}")
