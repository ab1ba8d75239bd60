"""Project root entry point for launching the web interface."""

from __future__ import annotations

import os

from polytrans.web import create_app


def main():
    app = create_app()
    port = int(os.environ.get("POLYTRANS_PORT", "5500"))
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("POLYTRANS_ENV", "").lower() not in ("prod", "production"))


if __name__ == "__main__":
    main()
