import uvicorn

from soundfly.config import settings
from soundfly.presentation.app_factory import app


def run() -> None:
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
