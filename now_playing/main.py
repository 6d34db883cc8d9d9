"""ASGI entry point: `uvicorn now_playing.main:app` or the `now-playing` script."""

from pathlib import Path

from dotenv import load_dotenv
from fastapi.responses import Response

from now_playing.config import get_settings
from now_playing.core.app_factory import create_app
from now_playing.logging_config import setup_logging

# Environment first, so Settings sees values from .env when it is first built
load_dotenv(Path(__file__).parent.parent / ".env")

settings = get_settings()
setup_logging(settings.log_level, settings.log_dir)

app = create_app()


@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    """Browsers hitting the API directly ask for an icon; answer with an empty one."""
    return Response(content=b"", media_type="image/x-icon")


def run() -> None:
    import uvicorn

    uvicorn.run(
        "now_playing.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
