"""Tests for ArtifactRetriever with a mocked HTTP session."""

import hashlib
import os
from unittest.mock import Mock, patch

import pytest
import requests

from depresolver.repository import Repository, RepositoryArtifact
from depresolver.retriever import ArtifactRetriever, CachingArtifactRetriever

REMOTE = Repository("https://repo.example.com/maven2/")
SECURED = Repository("https://repo.example.com/private/", "user", "secret")
LAST_MODIFIED = "Wed, 01 Mar 2023 10:00:00 GMT"
LAST_MODIFIED_EPOCH = 1677664800


def remote(path, repository=REMOTE):
    return RepositoryArtifact(repository, repository.location + path)


def response(status=200, content=b"", headers=None):
    mock_response = Mock()
    mock_response.status_code = status
    mock_response.content = content
    mock_response.headers = headers or {}
    mock_response.iter_content.return_value = [content]
    if status >= 400:
        mock_response.raise_for_status.side_effect = requests.HTTPError(f"{status}")
    return mock_response


@pytest.fixture
def session():
    with patch('depresolver.retriever.requests.Session') as mock_session_class:
        mock_session = Mock()
        mock_session.headers = {}
        mock_session_class.return_value = mock_session
        yield mock_session


class TestRemoteReads:
    """Tests for reads over HTTP."""

    def test_user_agent(self, session):
        ArtifactRetriever()
        assert session.headers["User-Agent"].startswith("depresolver/")

    def test_read_string(self, session):
        session.request.return_value = response(content=b"<project/>")
        retriever = ArtifactRetriever()
        assert retriever.read_string(remote("g/a/1/a-1.pom")) == "<project/>"
        session.request.assert_called_once_with(
            "GET", "https://repo.example.com/maven2/g/a/1/a-1.pom", auth=None, timeout=30)

    def test_not_found_is_none(self, session):
        session.request.return_value = response(404)
        assert ArtifactRetriever().read_string(remote("g/a/1/a-1.pom")) is None

    def test_server_error_propagates(self, session):
        session.request.return_value = response(500)
        with pytest.raises(requests.HTTPError):
            ArtifactRetriever().read_string(remote("g/a/1/a-1.pom"))

    def test_credentials(self, session):
        session.request.return_value = response(content=b"x")
        ArtifactRetriever().read_bytes(remote("g/a/1/a-1.jar", SECURED))
        assert session.request.call_args.kwargs["auth"] == ("user", "secret")

    def test_exists_uses_head(self, session):
        session.request.return_value = response(headers={"Content-Length": "3"})
        assert ArtifactRetriever().exists(remote("g/a/1/a-1.jar"))
        assert session.request.call_args.args[0] == "HEAD"

    def test_artifact_info(self, session):
        session.request.return_value = response(headers={"Content-Length": "12", "Last-Modified": LAST_MODIFIED})
        info = ArtifactRetriever().artifact_info(remote("g/a/1/a-1.jar"))
        assert info.size == 12
        assert info.last_modified == LAST_MODIFIED_EPOCH

    def test_caching_retriever_reads_once(self, session):
        session.request.return_value = response(content=b"<metadata/>")
        retriever = ArtifactRetriever.caching()
        assert isinstance(retriever, CachingArtifactRetriever)
        artifact = remote("g/a/maven-metadata.xml")
        assert retriever.read_string(artifact) == "<metadata/>"
        assert retriever.read_string(artifact) == "<metadata/>"
        assert session.request.call_count == 1

    def test_context_manager_closes_session(self, session):
        with ArtifactRetriever():
            pass
        session.close.assert_called_once()


class TestRemoteTransfer:
    """Tests for downloading into a directory."""

    def test_download_sets_mtime(self, session, tmp_path):
        session.request.return_value = response(content=b"jar bytes", headers={"Last-Modified": LAST_MODIFIED})
        assert ArtifactRetriever().transfer_into_directory(remote("g/a/1/a-1.jar"), tmp_path)
        target = tmp_path / "a-1.jar"
        assert target.read_bytes() == b"jar bytes"
        assert int(target.stat().st_mtime) == LAST_MODIFIED_EPOCH
        assert [name for name in os.listdir(tmp_path)] == ["a-1.jar"]

    def test_missing_artifact(self, session, tmp_path):
        session.request.return_value = response(404)
        assert not ArtifactRetriever().transfer_into_directory(remote("g/a/1/a-1.jar"), tmp_path)
        assert os.listdir(tmp_path) == []

    def test_unchanged_file_is_not_downloaded(self, session, tmp_path):
        target = tmp_path / "a-1.jar"
        target.write_bytes(b"jar bytes")
        os.utime(target, (LAST_MODIFIED_EPOCH, LAST_MODIFIED_EPOCH))
        session.request.return_value = response(headers={"Content-Length": "9", "Last-Modified": LAST_MODIFIED})

        assert ArtifactRetriever().transfer_into_directory(remote("g/a/1/a-1.jar"), tmp_path)
        assert session.request.call_count == 1
        assert session.request.call_args.args[0] == "HEAD"

    def test_size_change_downloads(self, session, tmp_path):
        target = tmp_path / "a-1.jar"
        target.write_bytes(b"old")
        os.utime(target, (LAST_MODIFIED_EPOCH, LAST_MODIFIED_EPOCH))
        session.request.side_effect = [
            response(headers={"Content-Length": "9", "Last-Modified": LAST_MODIFIED}),
            response(content=b"jar bytes", headers={"Last-Modified": LAST_MODIFIED}),
        ]
        assert ArtifactRetriever().transfer_into_directory(remote("g/a/1/a-1.jar"), tmp_path)
        assert target.read_bytes() == b"jar bytes"

    def test_checksum_fallback(self, session, tmp_path):
        """Test that a matching published sha256 avoids the download."""
        target = tmp_path / "a-1.jar"
        target.write_bytes(b"jar bytes")
        digest = hashlib.sha256(b"jar bytes").hexdigest()
        session.request.side_effect = [
            response(headers={}),
            response(content=f"{digest}  a-1.jar\n".encode("utf-8")),
        ]
        assert ArtifactRetriever().transfer_into_directory(remote("g/a/1/a-1.jar"), tmp_path)
        assert session.request.call_count == 2
        assert session.request.call_args.args[1].endswith("a-1.jar.sha256")

    def test_checksum_mismatch_downloads(self, session, tmp_path):
        target = tmp_path / "a-1.jar"
        target.write_bytes(b"stale")
        session.request.side_effect = [
            response(headers={}),
            response(content=b"0000"),
            response(content=b"jar bytes"),
        ]
        assert ArtifactRetriever().transfer_into_directory(remote("g/a/1/a-1.jar"), tmp_path)
        assert target.read_bytes() == b"jar bytes"

    def test_invalid_directory(self, session, tmp_path):
        retriever = ArtifactRetriever()
        with pytest.raises(ValueError):
            retriever.transfer_into_directory(remote("g/a/1/a-1.jar"), tmp_path / "missing")
        file_path = tmp_path / "file"
        file_path.write_text("x")
        with pytest.raises(ValueError):
            retriever.transfer_into_directory(remote("g/a/1/a-1.jar"), file_path)


class TestLocalReads:
    """Tests for repositories on the file system."""

    def test_read_and_exists(self, tmp_path):
        (tmp_path / "a.pom").write_text("<project/>")
        repository = Repository(str(tmp_path))
        with ArtifactRetriever() as retriever:
            assert retriever.read_string(RepositoryArtifact(repository, str(tmp_path / "a.pom"))) == "<project/>"
            assert retriever.exists(RepositoryArtifact(repository, str(tmp_path / "a.pom")))
            assert retriever.read_string(RepositoryArtifact(repository, str(tmp_path / "b.pom"))) is None
            assert not retriever.exists(RepositoryArtifact(repository, str(tmp_path / "b.pom")))
