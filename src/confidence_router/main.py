"""Entrypoint: run the confidence router server."""

import uvicorn

from confidence_router.api.app import create_app
from confidence_router.config.settings import Settings


def main() -> None:
    settings = Settings()
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
