from __future__ import annotations

import uvicorn

from weighbridge.config import load_settings


def main() -> None:
    settings = load_settings()
    uvicorn.run("weighbridge.asgi:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
