#!/usr/bin/env python3
"""Portfolio backend server. Port configurable via PORT in .env."""

import logging

from portfolio.config import PORT
from portfolio.factory import create_app

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=PORT, debug=False)
