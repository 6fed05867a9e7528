"""
Process entry point: ``python -m api`` or the ``notes-server`` script.
"""
import logging

import uvicorn

from api import config


# PUBLIC_INTERFACE
def run():
    """Configure logging and serve the app on HOST:PORT."""
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger(__name__).info("Listening at http://%s:%s", config.HOST, config.PORT)
    uvicorn.run("api.main:app", host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
