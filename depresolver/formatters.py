"""Output formatters for various formats."""

import json
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import uuid4

from packageurl import PackageURL
from cyclonedx.model import ExternalReference, ExternalReferenceType, XsUri
from cyclonedx.model.bom import Bom
from cyclonedx.model.component import Component, ComponentType, ComponentScope
from cyclonedx.output.json import JsonV1Dot6

from .dependency_set import DependencySet
from .models import Dependency, Scope

logger = logging.getLogger(__name__)

PROJECT_URL = "https://pypi.org/project/depresolver/"


class OutputFormatter:
    """Formatter for various output formats."""

    @staticmethod
    def format_as_list(dependencies: DependencySet) -> str:
        """Format dependencies as a flat list (one per line)."""
        return ''.join(f"{dependency}\n" for dependency in dependencies)

    @staticmethod
    def format_as_tree(dependencies: DependencySet) -> str:
        """Format dependencies as a tree following their parents."""
        return dependencies.generate_dependency_tree()

    @staticmethod
    def format_as_sbom(
        dependencies_by_scope: Dict[Scope, DependencySet],
        command_line: Optional[str] = None
    ) -> str:
        """Generate a CycloneDX SBOM in JSON format.

        Args:
            dependencies_by_scope: Resolved dependencies of each scope.
            command_line: Recorded as a property of the BOM when given.

        Returns:
            The SBOM as indented JSON.
        """
        from . import __version__

        bom = Bom()
        bom.serial_number = uuid4()

        tool_purl = PackageURL.from_string(f"pkg:pypi/depresolver@{__version__}")
        tool_component = Component(
            name="depresolver",
            version=__version__,
            type=ComponentType.APPLICATION,
            purl=tool_purl,
            bom_ref=str(tool_purl),
            external_references=[ExternalReference(
                type=ExternalReferenceType.WEBSITE,
                url=XsUri(PROJECT_URL)
            )]
        )
        bom.metadata.tools.components.add(tool_component)
        bom.metadata.timestamp = datetime.now(timezone.utc).replace(microsecond=0)

        seen: Dict[Dependency, str] = {}
        ordered: List[Dependency] = []
        for scope, dependencies in dependencies_by_scope.items():
            for dependency in dependencies:
                if dependency in seen:
                    continue
                component = OutputFormatter._dependency_to_component(dependency, scope)
                seen[dependency] = str(component.bom_ref)
                ordered.append(dependency)
                bom.components.add(component)

        outputter = JsonV1Dot6(bom)
        sbom = json.loads(outputter.output_as_string())

        # dependsOn edges come from the parent of each resolved dependency
        children: Dict[Dependency, List[str]] = {}
        for dependency in ordered:
            if dependency.parent is not None and dependency.parent in seen:
                children.setdefault(dependency.parent, []).append(seen[dependency])

        dependencies_section = []
        for dependency in ordered:
            entry = {"ref": seen[dependency]}
            if dependency in children:
                entry["dependsOn"] = children[dependency]
            dependencies_section.append(entry)
        sbom['dependencies'] = dependencies_section

        if command_line:
            sbom.setdefault('metadata', {}).setdefault('properties', []).append(
                {"name": "depresolver:command-line", "value": command_line}
            )

        return json.dumps(sbom, indent=2)

    @staticmethod
    def _scope_to_cyclonedx(scope: Scope) -> ComponentScope:
        """
        Map a resolution scope to CycloneDX ComponentScope.

          compile, runtime, standalone -> REQUIRED (needed at runtime)
          provided, test -> EXCLUDED (not needed at runtime)
        """
        if scope in (Scope.PROVIDED, Scope.TEST):
            return ComponentScope.EXCLUDED
        return ComponentScope.REQUIRED

    @staticmethod
    def _dependency_to_component(dependency: Dependency, scope: Scope) -> Component:
        """Convert a Dependency to a CycloneDX Component."""
        purl = dependency.to_purl()
        return Component(
            name=dependency.artifact_id,
            version=purl.version,
            type=ComponentType.LIBRARY,
            group=dependency.group_id,
            purl=purl,
            bom_ref=purl.to_string(),
            scope=OutputFormatter._scope_to_cyclonedx(scope)
        )
