"""Version overrides applied to every coordinate that gets resolved."""

import logging
import re
from dataclasses import replace
from typing import Dict, Optional

from .config import PROPERTY_OVERRIDE_PREFIX, HierarchicalProperties
from .models import Dependency
from .version import UNKNOWN, Version, parse_version

logger = logging.getLogger(__name__)

ENTRY_SEPARATORS = re.compile(r"[,;\n]")


def _artifact_key(dependency: Dependency) -> str:
    return f"{dependency.group_id}:{dependency.artifact_id}"


class VersionResolution:
    """Table of ``groupId:artifactId -> version`` overrides.

    Directives are read from every property whose name starts with
    ``resolver.override`` and have the form ``groupId:artifactId:version``.
    """

    def __init__(self, properties: Optional[HierarchicalProperties] = None):
        self._overrides: Dict[str, Version] = {}
        if properties is None:
            return
        for name in properties.names():
            if not name.startswith(PROPERTY_OVERRIDE_PREFIX):
                continue
            for entry in ENTRY_SEPARATORS.split(properties.get_string(name, "")):
                entry = entry.strip()
                if not entry:
                    continue
                override = Dependency.parse(entry)
                if override is None or override.version == UNKNOWN:
                    logger.warning(f"Ignoring malformed version override '{entry}'")
                    continue
                self._overrides[_artifact_key(override)] = override.version

    @classmethod
    def dummy(cls) -> 'VersionResolution':
        """A resolution without any overrides."""
        return cls()

    def add_override(self, artifact: str, version) -> 'VersionResolution':
        if isinstance(version, str):
            version = parse_version(version)
        self._overrides[artifact] = version
        return self

    @property
    def version_overrides(self) -> Dict[str, Version]:
        return self._overrides

    def override_version(self, dependency: Dependency) -> Version:
        """Effective version of a dependency."""
        return self._overrides.get(_artifact_key(dependency), dependency.version)

    def override_dependency(self, dependency: Dependency) -> Dependency:
        """The dependency itself, or a copy carrying the overridden version."""
        version = self._overrides.get(_artifact_key(dependency))
        if version is None or str(version) == str(dependency.version):
            return dependency
        logger.debug(f"Overriding version of {_artifact_key(dependency)} with {version}")
        return replace(dependency, version=version)
