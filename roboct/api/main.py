"""Entry point: ``roboct-api`` or ``uvicorn roboct.api.main:app``"""

import uvicorn

from .app import create_app
from .core.config import get_settings

app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "roboct.api.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
