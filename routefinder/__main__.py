"""Entry point for running the route finder package."""

from __future__ import annotations

import asyncio
from typing import Optional, Sequence

import httpx
import uvicorn

from .config import resolve_runtime_config
from .datatypes import ResolvedConfig
from .logging_utils import configure_logging, get_logger, log_config_snapshot
from .service import app as fastapi_app, attach_state, create_state


async def _run_application(config: ResolvedConfig) -> None:
    configure_logging(config.log_level)
    log_config_snapshot(config)
    logger = get_logger("routefinder.runtime")

    async with httpx.AsyncClient(timeout=config.request_timeout_s) as client:
        attach_state(create_state(config, client=client))

        server_config = uvicorn.Config(
            fastapi_app,
            host=config.host,
            port=config.port,
            loop="asyncio",
            log_level=config.log_level.lower(),
        )
        server = uvicorn.Server(server_config)
        logger.info(
            "server_starting",
            extra={"event": "server_starting", "host": config.host, "port": config.port},
        )

        try:
            await server.serve()
        except Exception as exc:  # pragma: no cover - defensive logging
            logger.exception("runtime_exception", extra={"event": "runtime_exception", "error": str(exc)})
            raise
        finally:
            logger.info("server_stopped", extra={"event": "server_stopped"})


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point."""

    config, _ = resolve_runtime_config(argv)
    asyncio.run(_run_application(config))


if __name__ == "__main__":  # pragma: no cover
    main()
