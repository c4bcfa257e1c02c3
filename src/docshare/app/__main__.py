"""Run the server: ``python -m docshare.app``.

Configuration is read from the environment (see ``DocShareSettings.from_env``).
"""

from __future__ import annotations

import uvicorn

from .main import create_app
from .settings import DocShareSettings


def main() -> None:
    settings = DocShareSettings.from_env()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
