"""Parser for ``maven-metadata.xml`` documents."""

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import List, Optional

from .exceptions import DocumentParseError
from .version import UNKNOWN, Version, VersionNumber, parse_version

UNSTABLE_PATTERNS = (
    re.compile(r"^m\d*$"),
    re.compile(r"^b\d*$"),
    re.compile(r"^a\d*$"),
)


def local_name(tag: str) -> str:
    """Element tag without its namespace."""
    return tag.rpartition("}")[2]


def is_stable(version: Version) -> bool:
    """Whether a version carries no pre-release qualifier."""
    qualifier = version.qualifier.lower()
    if qualifier.startswith("rc") or qualifier.startswith("cr"):
        return False
    if "milestone" in qualifier or "beta" in qualifier or "alpha" in qualifier:
        return False
    return not any(pattern.match(qualifier) for pattern in UNSTABLE_PATTERNS)


@dataclass
class MavenMetadata:
    """Version pointers of one artifact, or of one snapshot version."""

    latest: Version = UNKNOWN
    release: Version = UNKNOWN
    snapshot: Version = UNKNOWN
    snapshot_timestamp: Optional[str] = None
    snapshot_build_number: Optional[int] = None
    versions: List[Version] = field(default_factory=list)


def parse_maven_metadata(content: str) -> MavenMetadata:
    """Parse a metadata document.

    ``latest`` ends up as the highest stable version when there is one, and
    for snapshot metadata ``snapshot`` is the first listed version carrying
    the ``timestamp-buildNumber`` qualifier.

    Raises:
        DocumentParseError: With every problem found in the document.
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise DocumentParseError([f"XML parse error: {e}"]) from e

    errors = []
    metadata = MavenMetadata()
    has_snapshot = False
    for element in root.iter():
        if not isinstance(element.tag, str):
            continue
        tag = local_name(element.tag)
        text = (element.text or "").strip()
        if tag == "latest":
            metadata.latest = parse_version(text)
        elif tag == "release":
            metadata.release = parse_version(text)
        elif tag == "version":
            metadata.versions.append(parse_version(text))
        elif tag == "timestamp":
            metadata.snapshot_timestamp = text
        elif tag == "buildNumber":
            try:
                metadata.snapshot_build_number = int(text)
            except ValueError:
                errors.append(f"Invalid buildNumber '{text}'")
        elif tag == "snapshot":
            has_snapshot = True

    if errors:
        raise DocumentParseError(errors)

    if has_snapshot and metadata.versions:
        if metadata.snapshot_timestamp is not None and metadata.snapshot_build_number is not None:
            qualifier = f"{metadata.snapshot_timestamp}-{metadata.snapshot_build_number}"
        else:
            qualifier = "SNAPSHOT"
        first = metadata.versions[0]
        if isinstance(first, VersionNumber):
            metadata.snapshot = first.with_qualifier(qualifier)
        else:
            metadata.snapshot = first

    stable = [version for version in metadata.versions if is_stable(version)]
    if stable:
        metadata.latest = max(stable)
    return metadata
