"""Run the widget cache service: ``python -m dashcache``."""

import uvicorn

from dashcache.core.container import container


def main() -> None:
    settings = container.settings()
    uvicorn.run(
        "dashcache.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
