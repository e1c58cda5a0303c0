"""User analytics service: ingest user records and serve aggregate queries over HTTP."""

import logging
import os
import sys

from app import create_app
from config import Config


def main():
    config = Config(os.environ.get("CONFIG_PATH", "config.yaml"))
    server = config["server"]

    logging.basicConfig(
        level=getattr(logging, str(server["log_level"]).upper(), logging.INFO),
        format="%(asctime)s [user-analytics] %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )
    logger = logging.getLogger(__name__)

    app = create_app(config)
    logger.info("Listening on %s:%d", server["host"], server["port"])
    # threaded so /evaluation can call back into this same process
    app.run(host=server["host"], port=server["port"], debug=server["debug"], threaded=True)


if __name__ == "__main__":
    main()
