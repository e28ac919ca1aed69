"""CLI entry point for docsproxy.

``docsproxy serve`` runs the documentation server; ``docsproxy warm`` refreshes
the release registry and walks the latest release once.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import Any, Dict, Optional, Sequence

import yaml

from .args import parse_args
from .common.logging_utils import configure_logging
from .constants import Constants, ExitCodes
from .errors import DocsProxyError, UpstreamUnavailable
from .proxy.server import ProxyConfig, run_proxy_server_sync, run_warm_once

logger = logging.getLogger(__name__)

CONFIG_SECTION = "docsproxy"


def _load_config(config_path: Optional[str]) -> Dict[str, Any]:
    """Load server configuration from a YAML file.

    Args:
        config_path: Path to YAML config file.

    Returns:
        The ``docsproxy`` section, or the whole mapping when there is none.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load config: %s", e)
        return {}

    if isinstance(data, dict):
        section = data.get(CONFIG_SECTION, data)
        return section if isinstance(section, dict) else {}
    return {}


def _setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
    """
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()

    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        )
        file_handler.setFormatter(formatter)
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def _serve(config: ProxyConfig) -> int:
    print(
        f"\n"
        f"  docsproxy\n"
        f"  =========\n"
        f"  Listening: http://{config.host}:{config.port}\n"
        f"  Docs: {config.github_organization}/{config.github_repository}\n"
        f"\n"
        f"  Press Ctrl+C to stop\n"
    )
    run_proxy_server_sync(config)
    return ExitCodes.SUCCESS.value


def _warm(config: ProxyConfig) -> int:
    try:
        report = asyncio.run(run_warm_once(config))
    except UpstreamUnavailable as e:
        logger.error("Cache warm-up failed, upstream unavailable: %s", e)
        return ExitCodes.CONNECTION_ERROR.value
    except DocsProxyError as e:
        logger.error("Cache warm-up failed: %s", e)
        return ExitCodes.REGISTRY_ERROR.value

    print(f"Warmed {report.visited} artifacts of {report.version} ({report.failed} failed).")
    return ExitCodes.SUCCESS.value


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the ``docsproxy`` command.

    Args:
        argv: Arguments without the program name; defaults to sys.argv.

    Returns:
        Process exit code.
    """
    args = parse_args(argv)
    _setup_logging(args)

    config = ProxyConfig.from_args(args, _load_config(getattr(args, "CONFIG", None)))
    missing = config.missing()
    if missing:
        sys.stderr.write(f"ERROR: Missing required settings: {', '.join(missing)}\n")
        return ExitCodes.FILE_ERROR.value

    if args.command == "warm":
        return _warm(config)
    return _serve(config)


if __name__ == "__main__":
    sys.exit(main())
