"""Maven dependency resolution: versions, descriptors, transitive closure and transfer."""

__version__ = "1.0.0"

from .config import HierarchicalProperties
from .dependency_set import DependencyScopes, DependencySet
from .exceptions import DependencyError, ErrorKind
from .models import Dependency, DependencyExclusion, LocalDependency, LocalModule, Module, Scope
from .repository import Repository, RepositoryArtifact
from .resolution import VersionResolution
from .resolver import DependencyResolver
from .retriever import ArtifactRetriever
from .version import UNKNOWN, Version, VersionGeneric, VersionNumber, parse_version

__all__ = [
    "ArtifactRetriever",
    "Dependency",
    "DependencyError",
    "DependencyExclusion",
    "DependencyResolver",
    "DependencyScopes",
    "DependencySet",
    "ErrorKind",
    "HierarchicalProperties",
    "LocalDependency",
    "LocalModule",
    "Module",
    "Repository",
    "RepositoryArtifact",
    "Scope",
    "UNKNOWN",
    "Version",
    "VersionGeneric",
    "VersionNumber",
    "VersionResolution",
    "parse_version",
]
