from __future__ import annotations

import logging

from microlog_app import create_app
from microlog_app.extensions import db

app = create_app()
logging.basicConfig(
    level=app.config["LOG_LEVEL"],
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

with app.app_context():
    db.create_all()


if __name__ == "__main__":
    app.run(host="0.0.0.0", debug=True)
