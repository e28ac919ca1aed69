"""Argument parsing functionality for docsproxy."""

import argparse

from . import __version__


def _add_common_arguments(parser):
    """Options shared by every sub-command."""
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)
    parser.add_argument("--organization",
                        dest="GITHUB_ORGANIZATION",
                        help="GitHub organization owning the docs repository "
                             "(default: $GITHUB_ORGANIZATION)",
                        action="store",
                        type=str)
    parser.add_argument("--repository",
                        dest="GITHUB_REPOSITORY",
                        help="Docs repository name (default: $GITHUB_REPOSITORY)",
                        action="store",
                        type=str)
    parser.add_argument("--github-user",
                        dest="GITHUB_USER",
                        help="User for raw content access (default: $GITHUB_ACCESS_USER)",
                        action="store",
                        type=str)
    parser.add_argument("--api-base",
                        dest="API_BASE",
                        help="GitHub REST API base URL",
                        action="store",
                        type=str)
    parser.add_argument("--raw-base",
                        dest="RAW_BASE",
                        help="GitHub raw content base URL",
                        action="store",
                        type=str)
    parser.add_argument("--timeout",
                        dest="PROXY_TIMEOUT",
                        help="Upstream request timeout in seconds",
                        action="store",
                        type=int)
    parser.add_argument("--registry-ttl",
                        dest="REGISTRY_TTL",
                        help="Lifetime of the release registry snapshot in seconds",
                        action="store",
                        type=int)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)


def build_parser():
    """Build the docsproxy argument parser."""
    parser = argparse.ArgumentParser(
        prog="docsproxy",
        description="docsproxy - versioned documentation proxy with release-aware caching",
        add_help=True,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the documentation HTTP server")
    _add_common_arguments(serve)
    serve.add_argument("--host",
                       dest="PROXY_HOST",
                       help="Host to bind (default: 127.0.0.1)",
                       action="store",
                       type=str)
    serve.add_argument("--port",
                       dest="PROXY_PORT",
                       help="Port to bind (default: 8080)",
                       action="store",
                       type=int)
    serve.add_argument("--warm-interval",
                       dest="WARM_INTERVAL",
                       help="Seconds between cache warm-ups of the latest release (0 disables)",
                       action="store",
                       type=int)
    serve.add_argument("--cache-max-bytes",
                       dest="CACHE_MAX_BYTES",
                       help="Upper bound for cached artifact bodies in bytes",
                       action="store",
                       type=int)

    warm = subparsers.add_parser("warm", help="Refresh the release registry and warm the cache once")
    _add_common_arguments(warm)

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
