"""Run the listings API with uvicorn."""

import uvicorn

from server.config import Settings


def main() -> None:
    settings = Settings.from_env()
    uvicorn.run("server.app:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
