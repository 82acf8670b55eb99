"""Parser for Maven POM descriptors.

A POM is flattened eagerly: its parent chain is loaded while parsing and the
inherited properties, managed dependencies and declarations are merged into
the child, the child winning on every key.
"""

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional

from .exceptions import DocumentParseError
from .models import Dependency, ExclusionSet, Scope, TYPE_JAR, TYPE_POM, normalize_type
from .version import parse_version

logger = logging.getLogger(__name__)

SCOPE_IMPORT = "import"

# Direct children of <project> exposed as ``project.*`` properties.
PROJECT_PROPERTIES = (
    "groupId",
    "artifactId",
    "version",
    "packaging",
    "name",
    "description",
    "url",
    "inceptionYear",
)

PROPERTY_REFERENCE = re.compile(r"\$\{([^<>{}$]+)}")

# Loads the flattened POM of a parent or imported BOM coordinate.
PomLoader = Callable[[Dependency], 'MavenPom']


def get_element_text(parent: ET.Element, tag_name: str) -> Optional[str]:
    """Get text content of a child element."""
    elem = parent.find(tag_name)
    if elem is not None and elem.text:
        return elem.text.strip()
    return None


def resolve_property(value: Optional[str], properties: Dict[str, str], max_iterations: int = 10) -> Optional[str]:
    """
    Resolve ${property} references in a string with nesting support.
    Unknown references are left untouched.
    """
    if not value or '${' not in value:
        return value

    resolved = value
    for _ in range(max_iterations):
        replaced = PROPERTY_REFERENCE.sub(lambda m: properties.get(m.group(1), m.group(0)), resolved)
        if replaced == resolved:
            break
        resolved = replaced
    return resolved


def _strip_namespaces(root: ET.Element) -> None:
    for elem in root.iter():
        if isinstance(elem.tag, str) and '}' in elem.tag:
            elem.tag = elem.tag.split('}', 1)[1]


def parse_exclusions(dep_elem: ET.Element) -> Optional[ExclusionSet]:
    """Parse <exclusions> from a dependency element, None when absent."""
    exclusions_elem = dep_elem.find('exclusions')
    if exclusions_elem is None:
        return None

    exclusions = ExclusionSet()
    for exclusion in exclusions_elem.findall('exclusion'):
        ex_group = get_element_text(exclusion, 'groupId')
        ex_artifact = get_element_text(exclusion, 'artifactId')
        if ex_group and ex_artifact:
            exclusions.exclude(ex_group, ex_artifact)
            logger.debug(f"Found exclusion: {ex_group}:{ex_artifact}")
    return exclusions


@dataclass(eq=False)
class PomDependency:
    """A dependency exactly as declared in a POM, possibly with unresolved properties."""

    group_id: Optional[str]
    artifact_id: Optional[str]
    version: Optional[str] = None
    classifier: Optional[str] = None
    type: Optional[str] = None
    scope: Optional[str] = None
    optional: Optional[str] = None
    exclusions: Optional[ExclusionSet] = None
    parent: Optional[Dependency] = None

    @classmethod
    def from_element(cls, elem: ET.Element, parent: Optional[Dependency]) -> 'PomDependency':
        return cls(
            group_id=get_element_text(elem, 'groupId'),
            artifact_id=get_element_text(elem, 'artifactId'),
            version=get_element_text(elem, 'version'),
            classifier=get_element_text(elem, 'classifier'),
            type=get_element_text(elem, 'type'),
            scope=get_element_text(elem, 'scope'),
            optional=get_element_text(elem, 'optional'),
            exclusions=parse_exclusions(elem),
            parent=parent,
        )

    def is_pom_import(self) -> bool:
        return self.scope == SCOPE_IMPORT and self.type == TYPE_POM

    def key(self):
        return (self.group_id, self.artifact_id, self.classifier or "", normalize_type(self.type))

    def convert_to_dependency(self) -> Dependency:
        return Dependency(
            self.group_id,
            self.artifact_id,
            parse_version(self.version),
            self.classifier or "",
            self.type or TYPE_JAR,
            self.exclusions if self.exclusions is not None else ExclusionSet(),
            self.parent,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, PomDependency):
            return False
        return self.key() == other.key()

    def __hash__(self) -> int:
        return hash(self.key())

    def __str__(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"


class MavenPom:
    """A flattened POM: own content merged over its parent chain."""

    def __init__(self, owner: Optional[Dependency] = None):
        self.owner = owner
        self.properties: Dict[str, str] = {}
        self.dependency_management: Dict[PomDependency, PomDependency] = {}
        self.declarations: Dict[PomDependency, PomDependency] = {}
        self.parent_pom: Optional['MavenPom'] = None

    @classmethod
    def parse(cls, content: str, owner: Optional[Dependency] = None,
              loader: Optional[PomLoader] = None) -> 'MavenPom':
        """Parse and flatten a POM document.

        Args:
            content: The POM XML.
            owner: Dependency this POM describes, becomes the parent pointer
                of every declared dependency.
            loader: Fetches parent and imported BOM POMs. Without it, parent
                chains and imports are skipped.

        Returns:
            The flattened POM.

        Raises:
            DocumentParseError: If the document is malformed.
        """
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            raise DocumentParseError([f"XML parse error: {e}"]) from e
        _strip_namespaces(root)
        if root.tag != 'project':
            raise DocumentParseError([f"Unexpected root element <{root.tag}>, expected <project>"])

        pom = cls(owner)
        own_properties: Dict[str, str] = {}
        for name in PROJECT_PROPERTIES:
            text = get_element_text(root, name)
            if text:
                own_properties[f"project.{name}"] = text
        props_elem = root.find('properties')
        if props_elem is not None:
            for prop in props_elem:
                if isinstance(prop.tag, str):
                    own_properties[prop.tag] = (prop.text or "").strip()

        parent_elem = root.find('parent')
        if parent_elem is not None:
            pom._inherit(parent_elem, own_properties, loader)
        pom.properties.update(own_properties)

        errors = []
        for elem in root.findall('dependencyManagement/dependencies/dependency'):
            managed = PomDependency.from_element(elem, owner)
            if not managed.group_id or not managed.artifact_id:
                errors.append("Managed dependency without groupId or artifactId")
                continue
            if managed.is_pom_import():
                pom._import(managed, loader)
            else:
                pom.dependency_management[managed] = managed

        for elem in root.findall('dependencies/dependency'):
            declared = PomDependency.from_element(elem, owner)
            if not declared.group_id or not declared.artifact_id:
                errors.append("Dependency without groupId or artifactId")
                continue
            pom.declarations[declared] = declared

        if errors:
            raise DocumentParseError(errors)
        return pom

    def _inherit(self, parent_elem: ET.Element, own_properties: Dict[str, str],
                 loader: Optional[PomLoader]) -> None:
        group_id = resolve_property(get_element_text(parent_elem, 'groupId'), own_properties)
        artifact_id = resolve_property(get_element_text(parent_elem, 'artifactId'), own_properties)
        version = resolve_property(get_element_text(parent_elem, 'version'), own_properties)
        if not group_id or not artifact_id or not version:
            raise DocumentParseError(["Parent declaration needs groupId, artifactId and version"])
        if loader is None:
            logger.debug(f"No loader for parent {group_id}:{artifact_id}:{version}, skipping")
            return

        parent = loader(Dependency(group_id, artifact_id, parse_version(version)))
        self.parent_pom = parent
        self.properties.update(parent.properties)
        self.dependency_management.update(parent.dependency_management)
        self.declarations.update(parent.declarations)

    def _import(self, bom: PomDependency, loader: Optional[PomLoader]) -> None:
        group_id = self.resolve(bom.group_id)
        artifact_id = self.resolve(bom.artifact_id)
        version = self.resolve(bom.version)
        if loader is None:
            logger.debug(f"No loader for BOM {group_id}:{artifact_id}:{version}, skipping")
            return

        logger.debug(f"Importing BOM: {group_id}:{artifact_id}:{version}")
        imported = loader(Dependency(group_id, artifact_id, parse_version(version), type=TYPE_POM))
        count = 0
        for managed in imported.dependency_management.values():
            resolved = imported.resolve_dependency(managed)
            if resolved not in self.dependency_management:
                self.dependency_management[resolved] = resolved
                count += 1
        logger.debug(f"Imported {count} managed versions from BOM {group_id}:{artifact_id}")

    def resolve(self, value: Optional[str]) -> Optional[str]:
        """Substitute this POM's properties into a value."""
        return resolve_property(value, self.properties)

    def resolve_dependency(self, dependency: PomDependency) -> PomDependency:
        """A copy of a declaration with every property reference substituted."""
        return replace(
            dependency,
            group_id=self.resolve(dependency.group_id),
            artifact_id=self.resolve(dependency.artifact_id),
            version=self.resolve(dependency.version),
            classifier=self.resolve(dependency.classifier),
            type=self.resolve(dependency.type),
            scope=self.resolve(dependency.scope),
            optional=self.resolve(dependency.optional),
        )

    def _managed(self) -> Dict[PomDependency, PomDependency]:
        managed = {}
        for entry in self.dependency_management.values():
            resolved = self.resolve_dependency(entry)
            managed[resolved] = resolved
        return managed

    def _effective(self, declaration: PomDependency,
                   managed: Dict[PomDependency, PomDependency]) -> Optional[PomDependency]:
        resolved = self.resolve_dependency(declaration)
        entry = managed.get(resolved)
        if entry is not None:
            if resolved.version is None:
                resolved.version = entry.version
            if resolved.scope is None:
                resolved.scope = entry.scope
            if resolved.optional is None:
                resolved.optional = entry.optional
            if resolved.exclusions is None:
                resolved.exclusions = entry.exclusions
        if resolved.scope is None:
            resolved.scope = Scope.COMPILE.value
        if resolved.optional == "true":
            return None
        if resolved.type is not None and resolved.type != TYPE_JAR:
            return None
        return resolved

    def get_dependencies(self, *scopes: Scope) -> List[PomDependency]:
        """Declarations of the requested scopes, grouped in the order of the scopes.

        Optional declarations and anything that isn't a jar are left out.
        """
        if not scopes:
            return []
        managed = self._managed()
        effective = [dep for dep in (self._effective(d, managed) for d in self.declarations.values())
                     if dep is not None]

        result: Dict[PomDependency, PomDependency] = {}
        for scope in scopes:
            for dep in effective:
                if dep.scope == scope.value:
                    result.setdefault(dep, dep)
        return list(result.values())
