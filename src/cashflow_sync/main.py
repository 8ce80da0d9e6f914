import uvicorn

from cashflow_sync.app import app
from cashflow_sync.core import settings
from cashflow_sync.logger import get_logging_config

__all__ = ["app", "run"]


def run() -> None:
    uvicorn.run(
        "cashflow_sync.app:app",
        host=settings.HOST,
        port=settings.PORT,
        log_config=get_logging_config(),
    )


if __name__ == "__main__":
    run()
