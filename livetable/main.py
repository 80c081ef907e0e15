"""Entry point for the livetable API server."""

from __future__ import annotations


def main() -> None:
    import uvicorn

    from livetable.config import load_settings
    from livetable.logging_setup import setup_logging
    from livetable.web.app import create_app

    settings = load_settings()
    setup_logging(settings)
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
