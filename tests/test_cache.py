"""Tests for the fingerprint cache."""

import json
import os

from depresolver.cache import CACHE_FILE, ResolverCache
from depresolver.dependency_set import DependencyScopes
from depresolver.models import Dependency, LocalDependency, LocalModule, Scope
from depresolver.repository import MAVEN_CENTRAL, Repository
from depresolver.resolution import VersionResolution


def scopes(*coordinates):
    result = DependencyScopes()
    for coordinate in coordinates:
        result.scope(Scope.COMPILE).include(Dependency.parse(coordinate))
    return result


class TestFingerprints:
    """Tests for fingerprint computation."""

    def test_identical_inputs_identical_digest(self, tmp_path):
        first = ResolverCache(tmp_path).fingerprint_dependencies([MAVEN_CENTRAL], scopes("g:a:1.0"))
        second = ResolverCache(tmp_path).fingerprint_dependencies([MAVEN_CENTRAL], scopes("g:a:1.0"))
        assert first == second
        assert len(first) == 40

    def test_every_input_matters(self, tmp_path):
        cache = ResolverCache(tmp_path)
        base = cache.fingerprint_dependencies([MAVEN_CENTRAL], scopes("g:a:1.0"))
        assert cache.fingerprint_dependencies([MAVEN_CENTRAL], scopes("g:a:1.1")) != base
        assert cache.fingerprint_dependencies([Repository("/repo")], scopes("g:a:1.0")) != base
        assert cache.fingerprint_dependencies([MAVEN_CENTRAL], scopes("g:a:1.0"), download_sources=True) != base

        overridden = ResolverCache(tmp_path, VersionResolution().add_override("g:a", "2.0"))
        assert overridden.fingerprint_dependencies([MAVEN_CENTRAL], scopes("g:a:1.0")) != base

    def test_local_dependencies_matter(self, tmp_path):
        cache = ResolverCache(tmp_path)
        base = cache.fingerprint_dependencies([], scopes())
        local = DependencyScopes()
        local.scope(Scope.STANDALONE).include(LocalDependency("/opt/agent.jar"))
        assert cache.fingerprint_dependencies([], local) != base

    def test_local_module_differs_from_local_jar(self, tmp_path):
        cache = ResolverCache(tmp_path)
        jar = DependencyScopes()
        jar.scope(Scope.COMPILE).include(LocalDependency("/opt/lib.jar"))
        module = DependencyScopes()
        module.scope(Scope.COMPILE).include(LocalModule("/opt/lib.jar"))
        assert cache.fingerprint_dependencies([], jar) != cache.fingerprint_dependencies([], module)
        assert (cache.fingerprint_extensions([], [], local_artifacts=[LocalDependency("/opt/lib.jar")])
                != cache.fingerprint_extensions([], [], local_artifacts=[LocalModule("/opt/lib.jar")]))


class TestDependenciesDomain:
    """Tests for the dependencies domain."""

    def test_round_trip(self, tmp_path):
        cache = ResolverCache(tmp_path)
        cache.fingerprint_dependencies([MAVEN_CENTRAL], scopes("g:a:1.0"), True, False)
        assert not cache.is_dependencies_hash_valid()
        cache.cache_dependencies_downloads(True, False)
        cache.cache_dependencies_dependency_tree(Scope.COMPILE, "compile:\n└─ g:a:1.0\n")
        cache.write_cache()

        reread = ResolverCache(tmp_path)
        reread.fingerprint_dependencies([MAVEN_CENTRAL], scopes("g:a:1.0"), True, False)
        assert reread.is_dependencies_hash_valid()
        assert reread.is_dependencies_cache_valid(True, False)
        assert not reread.is_dependencies_cache_valid(True, True)
        assert reread.get_cached_dependencies_dependency_tree(Scope.COMPILE) == "compile:\n└─ g:a:1.0\n"
        assert reread.get_cached_dependencies_dependency_tree(Scope.TEST) is None

    def test_version_change_invalidates(self, tmp_path):
        cache = ResolverCache(tmp_path)
        cache.fingerprint_dependencies([MAVEN_CENTRAL], scopes("g:a:1.0"))
        cache.cache_dependencies_dependency_tree(Scope.COMPILE, "old tree")
        cache.write_cache()

        changed = ResolverCache(tmp_path)
        changed.fingerprint_dependencies([MAVEN_CENTRAL], scopes("g:a:1.1"))
        assert not changed.is_dependencies_hash_valid()
        assert changed.get_cached_dependencies_dependency_tree(Scope.COMPILE) is None

        changed.write_cache()
        stored = json.loads((tmp_path / CACHE_FILE).read_text())
        assert "depresolver.dependencies.dependency-tree.compile" not in stored

    def test_domains_are_independent(self, tmp_path):
        cache = ResolverCache(tmp_path)
        cache.fingerprint_extensions(["https://repo"], ["g:ext:1.0"])
        cache.cache_extensions_dependency_tree("extensions tree")
        cache.write_cache()

        dependencies = ResolverCache(tmp_path)
        dependencies.fingerprint_dependencies([MAVEN_CENTRAL], scopes("g:a:1.0"))
        dependencies.cache_dependencies_dependency_tree(Scope.COMPILE, "compile tree")
        dependencies.write_cache()

        extensions = ResolverCache(tmp_path)
        extensions.fingerprint_extensions(["https://repo"], ["g:ext:1.0"])
        assert extensions.get_cached_extensions_dependency_tree() == "extensions tree"

        stored = json.loads((tmp_path / CACHE_FILE).read_text())
        assert stored["depresolver.dependencies.dependency-tree.compile"] == "compile tree"

    def test_corrupt_file_is_treated_as_absent(self, tmp_path):
        (tmp_path / CACHE_FILE).write_text("{not json")
        cache = ResolverCache(tmp_path)
        cache.fingerprint_dependencies([MAVEN_CENTRAL], scopes("g:a:1.0"))
        assert not cache.is_dependencies_hash_valid()
        cache.write_cache()
        assert json.loads((tmp_path / CACHE_FILE).read_text())["depresolver.dependencies.hash"]

    def test_unfingerprinted_cache_is_invalid(self, tmp_path):
        assert not ResolverCache(tmp_path).is_dependencies_hash_valid()
        assert not ResolverCache(tmp_path).is_extensions_hash_valid()


class TestExtensionsDomain:
    """Tests for local files tracked by the extensions domain."""

    def test_local_file_change_invalidates(self, tmp_path):
        jar = tmp_path / "local-extension.jar"
        jar.write_bytes(b"v1")
        cache_dir = tmp_path / "cache"

        cache = ResolverCache(cache_dir)
        cache.fingerprint_extensions([], [str(jar)], True, False)
        cache.cache_extensions_downloads(True, False)
        cache.write_cache([jar])

        reread = ResolverCache(cache_dir)
        reread.fingerprint_extensions([], [str(jar)], True, False)
        assert reread.is_extensions_cache_valid(True, False)

        stat = jar.stat()
        os.utime(jar, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))
        assert not reread.is_extensions_hash_valid()

    def test_deleted_local_file_invalidates(self, tmp_path):
        jar = tmp_path / "local-extension.jar"
        jar.write_bytes(b"v1")
        cache = ResolverCache(tmp_path / "cache")
        cache.fingerprint_extensions([], [str(jar)])
        cache.write_cache([jar])
        jar.unlink()
        assert not cache.is_extensions_hash_valid()
