"""ASGI entrypoint: ``uvicorn glowfolio.main:app``."""

import logging
import os

from .api import create_app
from .config import Settings

settings = Settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

app = create_app(settings)


def run() -> None:
    import uvicorn

    uvicorn.run(
        "glowfolio.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
        reload=settings.is_development,
    )


if __name__ == "__main__":
    run()
