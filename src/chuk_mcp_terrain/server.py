#!/usr/bin/env python3
"""
Terrain MCP Server - Entry Point

Serves slope, slope-aspect and terrain shadow layers computed from Terrarium
elevation tiles, plus sun position and GPX route statistics.
Supports both stdio (for Claude Desktop) and HTTP (for API access) transports.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .constants import EnvVar, ServerConfig, SessionProvider, StorageProvider

# Load environment variables from .env file
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

logger = logging.getLogger(__name__)

DEFAULT_HTTP_PORT = 8004


def _storage_kwargs() -> dict[str, Any] | None:
    """
    ArtifactStore keyword arguments from environment variables.

    Returns:
        Keyword arguments, or None if the configured provider is unusable
    """
    provider = os.environ.get(EnvVar.ARTIFACTS_PROVIDER, StorageProvider.MEMORY)
    bucket = os.environ.get(EnvVar.BUCKET_NAME)
    redis_url = os.environ.get(EnvVar.REDIS_URL)
    artifacts_path = os.environ.get(EnvVar.ARTIFACTS_PATH)

    kwargs: dict[str, Any] = {
        "session_provider": SessionProvider.REDIS if redis_url else SessionProvider.MEMORY,
    }

    if provider == StorageProvider.S3:
        missing = [
            name
            for name in (EnvVar.BUCKET_NAME, EnvVar.AWS_ACCESS_KEY_ID, EnvVar.AWS_SECRET_ACCESS_KEY)
            if not os.environ.get(name)
        ]
        if missing:
            logger.warning(f"S3 provider configured but missing: {', '.join(missing)}")
            return None

        logger.info(f"Using S3 artifact storage (bucket: {bucket})")
        logger.info(f"  Endpoint: {os.environ.get(EnvVar.AWS_ENDPOINT_URL_S3)}")
        kwargs["bucket"] = bucket

    elif provider == StorageProvider.FILESYSTEM:
        if not artifacts_path:
            logger.warning(
                f"Filesystem provider configured but {EnvVar.ARTIFACTS_PATH} not set. "
                "Defaulting to memory provider."
            )
            provider = StorageProvider.MEMORY
        else:
            Path(artifacts_path).mkdir(parents=True, exist_ok=True)
            logger.info(f"Using filesystem artifact storage (path: {artifacts_path})")
            kwargs["bucket"] = artifacts_path

    logger.info(f"  Redis URL: {'configured' if redis_url else 'not configured'}")
    kwargs["storage_provider"] = provider
    return kwargs


def _init_artifact_store() -> bool:
    """
    Initialize the global artifact store used for rendered rasters.

    Returns:
        True if artifact store was initialized, False otherwise
    """
    kwargs = _storage_kwargs()
    if kwargs is None:
        return False

    try:
        from chuk_artifacts import ArtifactStore
        from chuk_mcp_server import set_global_artifact_store

        set_global_artifact_store(ArtifactStore(**kwargs))
        logger.info(f"Artifact store initialized (provider: {kwargs['storage_provider']})")
        return True

    except Exception as e:
        logger.error(f"Failed to initialize artifact store: {e}")
        return False


# Import mcp instance and all registered tools from async server
from .async_server import mcp  # noqa: F401, E402


def _use_stdio(mode: str | None) -> bool:
    if mode is not None:
        return mode == "stdio"
    return bool(os.environ.get(EnvVar.MCP_STDIO)) or not sys.stdin.isatty()


def main() -> None:
    """Main entry point for the MCP server."""
    import argparse

    # Initialize artifact store at startup, not at import time
    _init_artifact_store()

    parser = argparse.ArgumentParser(description=ServerConfig.DESCRIPTION)
    parser.add_argument(
        "mode",
        nargs="?",
        choices=["stdio", "http"],
        default=None,
        help="Transport mode (stdio for Claude Desktop, http for API; auto-detected if omitted)",
    )
    parser.add_argument(
        "--host", default="localhost", help="Host for HTTP mode (default: localhost)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_HTTP_PORT,
        help=f"Port for HTTP mode (default: {DEFAULT_HTTP_PORT})",
    )

    args = parser.parse_args()

    if _use_stdio(args.mode):
        print("Terrain MCP Server starting in STDIO mode", file=sys.stderr)
        mcp.run(stdio=True)
    else:
        print(
            f"Terrain MCP Server starting in HTTP mode on {args.host}:{args.port}",
            file=sys.stderr,
        )
        mcp.run(host=args.host, port=args.port, stdio=False)


if __name__ == "__main__":
    main()
