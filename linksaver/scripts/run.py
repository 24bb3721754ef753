"""Main entry point for the LinkSaver server."""

import os

import uvicorn

from linksaver.config import config


def main() -> None:
    """Run the LinkSaver API with uvicorn."""
    port = int(os.getenv("BIND_PORT", str(config.PORT)))
    host = os.getenv("BIND_HOST", "127.0.0.1")

    uvicorn.run(
        "linksaver.main:app",
        host=host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    main()
