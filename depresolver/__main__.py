"""Main CLI entry point for depresolver."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import PROPERTY_DOWNLOAD_JAVADOC, PROPERTY_DOWNLOAD_SOURCES, HierarchicalProperties
from .dependency_set import DependencyScopes, DependencySet
from .exceptions import DependencyError
from .formatters import OutputFormatter
from .models import Dependency, Scope
from .operations import DependencyTreeOperation, DownloadOperation, PurgeOperation, TREE_SCOPES, UpdatesOperation
from .repository import Repository
from .resolution import VersionResolution
from .resolver import DependencyResolver
from .retriever import ArtifactRetriever

logger = logging.getLogger(__name__)

DEFAULT_REPOSITORY = "MAVEN_CENTRAL"


def setup_logging(verbose: bool = False, log_level: Optional[str] = None):
    """Configure logging based on verbosity flags."""
    if log_level:
        level = getattr(logging, log_level.upper(), logging.WARNING)
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )


def _parse_dependencies(coordinates: List[str], exclusions: List[str]) -> List[Dependency]:
    dependencies = []
    for coordinate in coordinates:
        dependency = Dependency.parse(coordinate)
        if dependency is None:
            raise ValueError(f"Invalid dependency '{coordinate}', expected groupId:artifactId[:version[:classifier]][@type]")
        for exclusion in exclusions:
            group_id, _, artifact_id = exclusion.partition(':')
            dependency.exclude(group_id or '*', artifact_id or '*')
        dependencies.append(dependency)
    return dependencies


def _repositories(properties: HierarchicalProperties, names: Optional[List[str]]) -> List[Repository]:
    return [Repository.resolve(properties, name) for name in (names or [DEFAULT_REPOSITORY])]


def _write_output(output: str, output_file: str) -> None:
    if output_file == '-':
        print(output, end='')
    else:
        with open(output_file, 'w') as f:
            f.write(output)
        logger.info(f"Output written to: {output_file}")


def handle_tree(args, properties: HierarchicalProperties, retriever: ArtifactRetriever) -> int:
    """Handle the 'tree' subcommand."""
    scope = Scope(args.scope)
    resolution = VersionResolution(properties)
    repositories = _repositories(properties, args.repo)
    roots = DependencySet(_parse_dependencies(args.coordinates, args.exclude))

    if args.output_format == 'tree' and args.cache_dir:
        dependencies = DependencyScopes()
        dependencies.scope(scope).add_all(roots)
        output = DependencyTreeOperation(
            retriever,
            properties=properties,
            repositories=repositories,
            dependencies=dependencies,
            cache_dir=Path(args.cache_dir),
        ).execute()
    elif args.output_format == 'tree':
        output = roots.generate_transitive_dependency_tree(
            resolution, retriever, repositories, *TREE_SCOPES[scope])
        output = output or "no dependencies\n"
    else:
        resolved = DependencySet()
        for dependency in roots:
            resolver = DependencyResolver(resolution, retriever, repositories, dependency)
            resolved.add_all(resolver.get_all_dependencies(*TREE_SCOPES[scope]))
        if args.output_format == 'list':
            output = OutputFormatter.format_as_list(resolved)
        else:
            output = OutputFormatter.format_as_sbom({scope: resolved}, ' '.join(sys.argv[1:]))

    _write_output(output, args.output)
    return 0


def handle_download(args, properties: HierarchicalProperties, retriever: ArtifactRetriever) -> int:
    """Handle the 'download' subcommand."""
    scope = Scope(args.scope)
    dependencies = DependencyScopes()
    dependencies.scope(scope).add_all(_parse_dependencies(args.coordinates, args.exclude))

    operation = DownloadOperation(
        retriever,
        properties=properties,
        repositories=_repositories(properties, args.repo),
        dependencies=dependencies,
        download_sources=args.sources or properties.get_bool(PROPERTY_DOWNLOAD_SOURCES),
        download_javadoc=args.javadoc or properties.get_bool(PROPERTY_DOWNLOAD_JAVADOC),
        cache_dir=Path(args.cache_dir) if args.cache_dir else None,
    )
    setattr(operation, f"lib_{scope.value}_directory", Path(args.dir))
    results = operation.execute()
    for artifact in results.get(scope, []):
        print(artifact.location)
    return 0


def handle_purge(args, properties: HierarchicalProperties, retriever: ArtifactRetriever) -> int:
    """Handle the 'purge' subcommand."""
    scope = Scope(args.scope)
    dependencies = DependencyScopes()
    dependencies.scope(scope).add_all(_parse_dependencies(args.coordinates, args.exclude))

    operation = PurgeOperation(
        retriever,
        properties=properties,
        repositories=_repositories(properties, args.repo),
        dependencies=dependencies,
        preserve_sources=args.sources or properties.get_bool(PROPERTY_DOWNLOAD_SOURCES),
        preserve_javadoc=args.javadoc or properties.get_bool(PROPERTY_DOWNLOAD_JAVADOC),
    )
    setattr(operation, f"lib_{scope.value}_directory", Path(args.dir))
    deleted = operation.execute().get(scope, [])
    if deleted:
        print(f"Deleting from {Path(args.dir).name}:")
        for path in deleted:
            print(f"    {path.name}")
    return 0


def handle_updates(args, properties: HierarchicalProperties, retriever: ArtifactRetriever) -> int:
    """Handle the 'updates' subcommand."""
    dependencies = DependencyScopes()
    dependencies.scope(Scope(args.scope)).add_all(_parse_dependencies(args.coordinates, args.exclude))

    updates = UpdatesOperation(
        retriever,
        properties=properties,
        repositories=_repositories(properties, args.repo),
        dependencies=dependencies,
    ).execute()
    if not updates:
        print("No dependency updates found.")
        return 0

    print("The following dependency updates were found.")
    for scope, scope_updates in updates.items():
        print(f"{scope.value}:")
        for dependency in scope_updates:
            print(f"    {dependency}")
    return 0


def handle_versions(args, properties: HierarchicalProperties, retriever: ArtifactRetriever) -> int:
    """Handle the 'versions' subcommand."""
    dependency = _parse_dependencies([args.coordinate], [])[0]
    resolver = DependencyResolver(
        VersionResolution(properties), retriever, _repositories(properties, args.repo), dependency)

    if args.latest:
        print(resolver.latest_version())
    elif args.release:
        print(resolver.release_version())
    else:
        for version in resolver.list_versions():
            print(version)
    return 0


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--repo', action='append',
                        help='Repository location, alias or well-known name (repeatable). Default: MAVEN_CENTRAL')
    parser.add_argument('--config', action='append', dest='config_files',
                        help='YAML configuration file (repeatable)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose output')
    parser.add_argument('--loglevel',
                        choices=['DEBUG', 'INFO', 'WARN', 'ERROR'],
                        help='Set log level')


def _add_resolution_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('coordinates', nargs='+',
                        help='Dependencies as groupId:artifactId[:version[:classifier]][@type]')
    parser.add_argument('--scope', default='compile',
                        choices=[Scope.COMPILE.value, Scope.PROVIDED.value, Scope.RUNTIME.value, Scope.TEST.value],
                        help='Scope of the given dependencies. Default: compile')
    parser.add_argument('--exclude', action='append', default=[],
                        help='Exclude groupId:artifactId from the transitive dependencies, * is a wildcard (repeatable)')


def _add_cache_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--cache-dir',
                        help='Directory of the fingerprint cache, skips work when nothing changed')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='depresolver',
        description='Resolve, inspect and download Maven dependencies'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Subcommands')

    tree_parser = subparsers.add_parser('tree', help='Show the transitive dependencies')
    _add_resolution_arguments(tree_parser)
    tree_parser.add_argument('--format', dest='output_format', default='tree',
                             choices=['tree', 'list', 'sbom'],
                             help='Output format (tree, list, sbom). Default: tree')
    tree_parser.add_argument('-o', '--output', default='-',
                             help='Output file (default: stdout, use - for stdout)')
    _add_cache_argument(tree_parser)
    _add_common_arguments(tree_parser)
    tree_parser.set_defaults(func=handle_tree)

    download_parser = subparsers.add_parser('download', help='Download the transitive dependencies')
    _add_resolution_arguments(download_parser)
    download_parser.add_argument('--dir', required=True,
                                 help='Directory receiving the artifacts')
    download_parser.add_argument('--sources', action='store_true',
                                 help='Also download sources jars')
    download_parser.add_argument('--javadoc', action='store_true',
                                 help='Also download javadoc jars')
    _add_cache_argument(download_parser)
    _add_common_arguments(download_parser)
    download_parser.set_defaults(func=handle_download)

    purge_parser = subparsers.add_parser('purge', help='Delete files the transitive dependencies no longer need')
    _add_resolution_arguments(purge_parser)
    purge_parser.add_argument('--dir', required=True,
                              help='Directory holding the downloaded artifacts')
    purge_parser.add_argument('--sources', action='store_true',
                              help='Keep sources jars')
    purge_parser.add_argument('--javadoc', action='store_true',
                              help='Keep javadoc jars')
    _add_common_arguments(purge_parser)
    purge_parser.set_defaults(func=handle_purge)

    updates_parser = subparsers.add_parser('updates', help='Report dependencies with a newer version')
    _add_resolution_arguments(updates_parser)
    _add_common_arguments(updates_parser)
    updates_parser.set_defaults(func=handle_updates)

    versions_parser = subparsers.add_parser('versions', help='List the published versions of a dependency')
    versions_parser.add_argument('coordinate', help='Dependency as groupId:artifactId')
    group = versions_parser.add_mutually_exclusive_group()
    group.add_argument('--latest', action='store_true', help='Only show the latest version')
    group.add_argument('--release', action='store_true', help='Only show the release version')
    _add_common_arguments(versions_parser)
    versions_parser.set_defaults(func=handle_versions)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose, args.loglevel)
    if args.config_files:
        properties = HierarchicalProperties.from_files(*[Path(f) for f in args.config_files])
    else:
        properties = HierarchicalProperties.from_files()

    try:
        with ArtifactRetriever.caching() as retriever:
            return args.func(args, properties, retriever)
    except DependencyError as e:
        logger.debug(f"{e.kind.value}: {e}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
