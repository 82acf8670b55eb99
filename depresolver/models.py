"""Core data models for depresolver: scopes, coordinates and exclusions."""

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Iterator, Optional, Set

from packageurl import PackageURL

from .version import UNKNOWN, Version, parse_version

CLASSIFIER_SOURCES = "sources"
CLASSIFIER_JAVADOC = "javadoc"

TYPE_JAR = "jar"
TYPE_POM = "pom"
TYPE_MODULAR_JAR = "modular-jar"
TYPE_CLASSPATH_JAR = "classpath-jar"

# Variant markers of the same physical jar artifact.
JAR_TYPES = (TYPE_JAR, TYPE_MODULAR_JAR, TYPE_CLASSPATH_JAR)

DEPENDENCY_PATTERN = re.compile(
    r"^(?P<groupId>[^:@]+):(?P<artifactId>[^:@]+)"
    r"(?::(?P<version>[^:@]+)(?::(?P<classifier>[^:@]+))?)?"
    r"(?:@(?P<type>[^:@]+))?$"
)


class Scope(Enum):
    """Usage phase of a dependency."""

    COMPILE = "compile"
    PROVIDED = "provided"
    RUNTIME = "runtime"
    STANDALONE = "standalone"
    TEST = "test"

    @classmethod
    def from_name(cls, name: Optional[str]) -> Optional['Scope']:
        """Look up a scope by its declared name, None when unrecognized."""
        if not name:
            return None
        try:
            return cls(name.strip().lower())
        except ValueError:
            return None

    def __str__(self):
        return self.value


def normalize_type(artifact_type: Optional[str]) -> str:
    """Map the jar variant markers onto plain ``jar``."""
    if not artifact_type or artifact_type in JAR_TYPES:
        return TYPE_JAR
    return artifact_type


@dataclass(frozen=True)
class DependencyExclusion:
    """A ``groupId:artifactId`` exclusion where either side may be ``*``."""

    group_id: str
    artifact_id: str

    def matches(self, dependency) -> bool:
        """Check a coordinate (anything with group_id and artifact_id)."""
        group_match = self.group_id == "*" or self.group_id == dependency.group_id
        artifact_match = self.artifact_id == "*" or self.artifact_id == dependency.artifact_id
        return group_match and artifact_match

    def __str__(self):
        return f"{self.group_id}:{self.artifact_id}"


class ExclusionSet:
    """Insertion-ordered set of exclusions."""

    def __init__(self, exclusions: Iterable[DependencyExclusion] = ()):
        self._exclusions = dict.fromkeys(exclusions)

    def exclude(self, group_id: str, artifact_id: str) -> 'ExclusionSet':
        self._exclusions[DependencyExclusion(group_id, artifact_id)] = None
        return self

    def add(self, exclusion: DependencyExclusion) -> None:
        self._exclusions[exclusion] = None

    def matches(self, dependency) -> bool:
        return any(exclusion.matches(dependency) for exclusion in self._exclusions)

    def __iter__(self) -> Iterator[DependencyExclusion]:
        return iter(self._exclusions)

    def __len__(self) -> int:
        return len(self._exclusions)

    def __contains__(self, exclusion) -> bool:
        return exclusion in self._exclusions

    def __eq__(self, other) -> bool:
        if not isinstance(other, ExclusionSet):
            return False
        return list(self._exclusions) == list(other._exclusions)

    def __repr__(self):
        return f"ExclusionSet({list(self._exclusions)!r})"


@dataclass
class Dependency:
    """A Maven coordinate.

    Identity covers group, artifact, classifier and the normalized type. The
    version is deliberately left out so that conflicting versions of the same
    artifact collide in sets and mappings.
    """

    group_id: str
    artifact_id: str
    version: Version = UNKNOWN
    classifier: str = ""
    type: str = TYPE_JAR
    exclusions: ExclusionSet = field(default_factory=ExclusionSet)
    parent: Optional['Dependency'] = field(default=None, repr=False)
    excluded_classifiers: Set[str] = field(default_factory=set)

    def __post_init__(self):
        if self.version is None:
            self.version = UNKNOWN
        elif isinstance(self.version, str):
            self.version = parse_version(self.version)
        if self.classifier is None:
            self.classifier = ""
        if not self.type:
            self.type = TYPE_JAR
        if self.parent is not None and self.parent.is_modular_jar() and self.type == TYPE_JAR:
            self.type = TYPE_MODULAR_JAR
        if self.exclusions is None:
            self.exclusions = ExclusionSet()

    @classmethod
    def parse(cls, description: Optional[str]) -> Optional['Dependency']:
        """Parse ``groupId:artifactId[:version[:classifier]][@type]``.

        Returns None when the description doesn't have that shape.
        """
        if not description:
            return None
        match = DEPENDENCY_PATTERN.match(description.strip())
        if not match:
            return None
        return cls(
            group_id=match.group("groupId"),
            artifact_id=match.group("artifactId"),
            version=parse_version(match.group("version")),
            classifier=match.group("classifier") or "",
            type=match.group("type") or cls.__dataclass_fields__["type"].default,
        )

    def base_dependency(self) -> 'Dependency':
        """The same artifact without classifier, type or exclusions."""
        return Dependency(self.group_id, self.artifact_id, self.version)

    def with_classifier(self, classifier: str) -> 'Dependency':
        return replace(self, classifier=classifier, exclusions=ExclusionSet(self.exclusions),
                       excluded_classifiers=set(self.excluded_classifiers))

    def with_version(self, version: Version) -> 'Dependency':
        return replace(self, version=version)

    def exclude(self, group_id: str, artifact_id: str) -> 'Dependency':
        """Exclude a transitive dependency, use ``*`` as a wildcard."""
        self.exclusions.exclude(group_id, artifact_id)
        return self

    def exclude_sources(self) -> 'Dependency':
        self.excluded_classifiers.add(CLASSIFIER_SOURCES)
        return self

    def exclude_javadoc(self) -> 'Dependency':
        self.excluded_classifiers.add(CLASSIFIER_JAVADOC)
        return self

    def is_modular_jar(self) -> bool:
        return self.type == TYPE_MODULAR_JAR

    def is_classpath_jar(self) -> bool:
        return self.type == TYPE_CLASSPATH_JAR

    @property
    def file_extension(self) -> str:
        return normalize_type(self.type)

    def to_file_name(self) -> str:
        """File name of this artifact as it's stored in a repository."""
        name = f"{self.artifact_id}-{self.version}"
        if self.classifier:
            name += f"-{self.classifier}"
        return f"{name}.{self.file_extension}"

    def to_artifact_string(self) -> str:
        """Coordinate string without the version."""
        text = f"{self.group_id}:{self.artifact_id}"
        if self.classifier:
            text += f":{self.classifier}"
        return text

    def to_purl(self) -> PackageURL:
        qualifiers = {}
        if self.classifier:
            qualifiers["classifier"] = self.classifier
        if self.file_extension != TYPE_JAR:
            qualifiers["type"] = self.file_extension
        return PackageURL(
            type="maven",
            namespace=self.group_id,
            name=self.artifact_id,
            version=None if self.version == UNKNOWN else str(self.version),
            qualifiers=qualifiers or None,
        )

    def _identity(self):
        return (self.group_id, self.artifact_id, self.classifier, normalize_type(self.type))

    def __eq__(self, other) -> bool:
        if not isinstance(other, Dependency):
            return False
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    def __str__(self) -> str:
        text = f"{self.group_id}:{self.artifact_id}"
        if self.version != UNKNOWN:
            text += f":{self.version}"
        if self.classifier:
            text += f":{self.classifier}"
        if self.type and self.type != TYPE_JAR:
            text += f"@{self.type}"
        return text


@dataclass(eq=False)
class Module(Dependency):
    """A dependency that always lands on the module path."""

    type: str = TYPE_MODULAR_JAR

    def __post_init__(self):
        if not self.type:
            self.type = TYPE_MODULAR_JAR
        super().__post_init__()


@dataclass(frozen=True)
class LocalDependency:
    """An artifact taken straight from the local file system."""

    path: str

    def is_modular_jar(self) -> bool:
        return False

    def __str__(self):
        return self.path


@dataclass(frozen=True)
class LocalModule(LocalDependency):
    """A local artifact that lands on the module path."""

    def is_modular_jar(self) -> bool:
        return True
