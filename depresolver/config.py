"""Layered configuration lookup.

Values are looked up through a chain of layers, the first layer that knows a
key wins: values put explicitly on an instance, then its parent instance, then
environment variables and finally YAML configuration files.
"""

import logging
import os
from collections import ChainMap
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

USER_CONFIG_FILE = Path.home() / ".depresolver" / "depresolver.yaml"
PROJECT_CONFIG_FILE = Path("depresolver.yaml")

PROPERTY_USER_HOME = "user.home"
PROPERTY_MAVEN_REPO_LOCAL = "maven.repo.local"
PROPERTY_REPOSITORY_PREFIX = "resolver.repo."
PROPERTY_OVERRIDE_PREFIX = "resolver.override"
PROPERTY_DOWNLOAD_SOURCES = "resolver.downloads.sources"
PROPERTY_DOWNLOAD_JAVADOC = "resolver.downloads.javadoc"

TRUE_VALUES = ("true", "yes", "on", "1")


def _flatten(data: Mapping, prefix: str = "") -> Iterator[Tuple[str, Any]]:
    for key, value in data.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            yield from _flatten(value, name)
        else:
            yield name, value


def load_yaml_config(path: Path) -> Dict[str, Any]:
    """Read a YAML configuration file into flat dotted keys.

    A missing file yields an empty mapping, an unreadable or malformed one is
    reported and ignored.
    """
    path = Path(path)
    if not path.is_file():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load config {path}: {e}")
        return {}
    if not isinstance(data, Mapping):
        if data is not None:
            logger.warning(f"Ignoring config {path}: top level isn't a mapping")
        return {}
    return dict(_flatten(data))


class HierarchicalProperties:
    """Key/value lookup through a chain of layers."""

    def __init__(self, parent: Optional['HierarchicalProperties'] = None,
                 defaults: Optional[Mapping[str, Any]] = None):
        self._values: Dict[str, Any] = {}
        self._parent = parent
        self._defaults = dict(defaults or {})

    @classmethod
    def from_files(cls, *paths: Path, environ: bool = True) -> 'HierarchicalProperties':
        """Build properties from YAML files, later files overriding earlier ones.

        Without explicit paths the user file and then the project file are
        read. Environment variables sit above every file.
        """
        if not paths:
            paths = (USER_CONFIG_FILE, PROJECT_CONFIG_FILE)
        defaults: Dict[str, Any] = {PROPERTY_USER_HOME: str(Path.home())}
        for path in paths:
            defaults.update(load_yaml_config(path))
        if environ:
            defaults.update(os.environ)
        return cls(defaults=defaults)

    @property
    def parent(self) -> Optional['HierarchicalProperties']:
        return self._parent

    def _layers(self) -> List[Mapping[str, Any]]:
        layers: List[Mapping[str, Any]] = [self._values]
        if self._parent is not None:
            layers.extend(self._parent._layers())
        layers.append(self._defaults)
        return layers

    def _chain(self) -> ChainMap:
        return ChainMap(*self._layers())

    def put(self, key: str, value: Any) -> 'HierarchicalProperties':
        self._values[key] = value
        return self

    def put_all(self, values: Mapping[str, Any]) -> 'HierarchicalProperties':
        self._values.update(values)
        return self

    def remove(self, key: str) -> Optional[Any]:
        return self._values.pop(key, None)

    def get(self, key: str, default: Any = None) -> Any:
        return self._chain().get(key, default)

    def get_string(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.get(key)
        if value is None:
            return default
        return str(value)

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in TRUE_VALUES

    def contains(self, key: str) -> bool:
        return key in self._chain()

    def __contains__(self, key: str) -> bool:
        return self.contains(key)

    def names(self) -> List[str]:
        """All known keys, highest-precedence layer first."""
        seen = {}
        for layer in self._layers():
            for key in layer:
                seen.setdefault(key, None)
        return list(seen)
