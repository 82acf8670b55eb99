"""Shared fixtures: an on-disk Maven repository laid out like a remote one."""

from pathlib import Path
from typing import Iterable, Optional, Tuple

import pytest

from depresolver.repository import Repository
from depresolver.retriever import ArtifactRetriever

POM_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
{body}
</project>
"""


def dependency_xml(group_id: str, artifact_id: str, version: Optional[str] = None,
                   scope: Optional[str] = None, optional: Optional[str] = None,
                   type_: Optional[str] = None, classifier: Optional[str] = None,
                   exclusions: Iterable[Tuple[str, str]] = ()) -> str:
    """Render one <dependency> element."""
    parts = [f"<groupId>{group_id}</groupId>", f"<artifactId>{artifact_id}</artifactId>"]
    if version is not None:
        parts.append(f"<version>{version}</version>")
    if classifier is not None:
        parts.append(f"<classifier>{classifier}</classifier>")
    if type_ is not None:
        parts.append(f"<type>{type_}</type>")
    if scope is not None:
        parts.append(f"<scope>{scope}</scope>")
    if optional is not None:
        parts.append(f"<optional>{optional}</optional>")
    exclusions = list(exclusions)
    if exclusions:
        parts.append("<exclusions>" + "".join(
            f"<exclusion><groupId>{g}</groupId><artifactId>{a}</artifactId></exclusion>"
            for g, a in exclusions) + "</exclusions>")
    return "<dependency>" + "".join(parts) + "</dependency>"


def coordinates_xml(group_id: str, artifact_id: str, version: Optional[str]) -> str:
    text = f"  <groupId>{group_id}</groupId>\n  <artifactId>{artifact_id}</artifactId>\n"
    if version is not None:
        text += f"  <version>{version}</version>\n"
    return text


class LocalRepository:
    """Writes POMs, jars and metadata in Maven repository layout."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    @property
    def repository(self) -> Repository:
        return Repository(str(self.root))

    def artifact_dir(self, group_id: str, artifact_id: str, version: Optional[str] = None) -> Path:
        path = self.root.joinpath(*group_id.split("."), artifact_id)
        if version is not None:
            path = path / version
        path.mkdir(parents=True, exist_ok=True)
        return path

    def add_pom(self, group_id: str, artifact_id: str, version: str, body: str = "",
                file_version: Optional[str] = None, declare_version: bool = True) -> Path:
        content = POM_TEMPLATE.format(
            body=coordinates_xml(group_id, artifact_id, version if declare_version else None) + body)
        path = self.artifact_dir(group_id, artifact_id, version) / f"{artifact_id}-{file_version or version}.pom"
        path.write_text(content, encoding="utf-8")
        return path

    def add_raw_pom(self, group_id: str, artifact_id: str, version: str, content: str) -> Path:
        path = self.artifact_dir(group_id, artifact_id, version) / f"{artifact_id}-{version}.pom"
        path.write_text(content, encoding="utf-8")
        return path

    def add_jar(self, group_id: str, artifact_id: str, version: str, classifier: str = "",
                content: Optional[bytes] = None, file_version: Optional[str] = None) -> Path:
        name = f"{artifact_id}-{file_version or version}"
        if classifier:
            name += f"-{classifier}"
        path = self.artifact_dir(group_id, artifact_id, version) / f"{name}.jar"
        path.write_bytes(content if content is not None else f"{name}".encode("utf-8"))
        return path

    def add_metadata(self, group_id: str, artifact_id: str, content: str,
                     version: Optional[str] = None) -> Path:
        path = self.artifact_dir(group_id, artifact_id, version) / "maven-metadata-local.xml"
        path.write_text(content, encoding="utf-8")
        return path

    def add_library(self, group_id: str, artifact_id: str, version: str, *dependencies: str, **kwargs) -> None:
        """POM with the given dependency elements plus a jar."""
        body = ""
        if dependencies:
            body = "  <dependencies>\n    " + "\n    ".join(dependencies) + "\n  </dependencies>\n"
        self.add_pom(group_id, artifact_id, version, body, **kwargs)
        self.add_jar(group_id, artifact_id, version)


@pytest.fixture
def local_repo(tmp_path):
    return LocalRepository(tmp_path / "repository")


@pytest.fixture
def retriever():
    with ArtifactRetriever() as artifact_retriever:
        yield artifact_retriever


@pytest.fixture
def jetty_repo(local_repo):
    """A small slice of the Jetty 11 dependency graph."""
    jetty = "org.eclipse.jetty"

    local_repo.add_pom(jetty, "jetty-project", "11.0.14", """
  <packaging>pom</packaging>
  <properties>
    <slf4j.version>2.0.5</slf4j.version>
    <jakarta.servlet.api.version>5.0.2</jakarta.servlet.api.version>
  </properties>
  <dependencyManagement>
    <dependencies>
      """ + dependency_xml("org.slf4j", "slf4j-api", "${slf4j.version}") + """
      """ + dependency_xml("org.eclipse.jetty.toolchain", "jetty-jakarta-servlet-api",
                           "${jakarta.servlet.api.version}") + """
    </dependencies>
  </dependencyManagement>
  <dependencies>
    """ + dependency_xml("org.junit.jupiter", "junit-jupiter", "5.9.2", scope="test") + """
  </dependencies>
""")

    parent = """
  <parent>
    <groupId>org.eclipse.jetty</groupId>
    <artifactId>jetty-project</artifactId>
    <version>11.0.14</version>
  </parent>
"""
    local_repo.add_pom(jetty, "jetty-server", "11.0.14", parent + """
  <dependencies>
    """ + dependency_xml("org.eclipse.jetty.toolchain", "jetty-jakarta-servlet-api") + """
    """ + dependency_xml(jetty, "jetty-http", "${project.version}") + """
    """ + dependency_xml(jetty, "jetty-io", "${project.version}") + """
    """ + dependency_xml(jetty, "jetty-jmx", "${project.version}", optional="true") + """
    """ + dependency_xml("org.slf4j", "slf4j-api") + """
    """ + dependency_xml(jetty, "jetty-xml", "${project.version}", scope="test") + """
  </dependencies>
""", declare_version=False)
    local_repo.add_jar(jetty, "jetty-server", "11.0.14")

    local_repo.add_library(jetty, "jetty-http", "11.0.14",
                           dependency_xml(jetty, "jetty-util", "11.0.14"),
                           dependency_xml("org.slf4j", "slf4j-api", "2.0.5"))
    local_repo.add_library(jetty, "jetty-io", "11.0.14",
                           dependency_xml(jetty, "jetty-util", "11.0.14"),
                           dependency_xml("org.slf4j", "slf4j-api", "2.0.5"))
    local_repo.add_library(jetty, "jetty-util", "11.0.14",
                           dependency_xml("org.slf4j", "slf4j-api", "2.0.5"))
    local_repo.add_library("org.eclipse.jetty.toolchain", "jetty-jakarta-servlet-api", "5.0.2")
    local_repo.add_library("org.slf4j", "slf4j-api", "2.0.5")
    local_repo.add_library("org.slf4j", "slf4j-api", "2.0.6")
    local_repo.add_library("org.slf4j", "slf4j-simple", "2.0.6",
                           dependency_xml("org.slf4j", "slf4j-api", "2.0.6"))
    local_repo.add_jar("org.slf4j", "slf4j-api", "2.0.6", classifier="sources")
    return local_repo
