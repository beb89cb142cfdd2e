"""
Run the crewbase API server.

    python -m crewbase.main
"""

import uvicorn

from crewbase.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "crewbase.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug and not settings.is_production,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
