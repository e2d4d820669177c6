"""Run the API with uvicorn.

Usage:
    python -m anime_api

Host and port are read from ``HOST`` and ``PORT`` (defaults ``0.0.0.0`` and
``8080``). Application settings come from the environment or a ``.env`` file.
"""
import asyncio
import os

from uvicorn import Config, Server


async def main() -> None:
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    config = Config(
        app="anime_api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=False,
    )
    await Server(config).serve()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
