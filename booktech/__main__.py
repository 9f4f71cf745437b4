"""Development server: ``python -m booktech``.

Production deployments should point a WSGI server (gunicorn) at
``booktech.startup:create_app()``.
"""
from __future__ import annotations

import os

from booktech.startup import create_app


def main() -> None:
    app = create_app()
    port = int(os.getenv("PORT", "5000"))
    app.run(host=os.getenv("HOST", "0.0.0.0"), port=port)


if __name__ == "__main__":
    main()
