import logging

from wirecrypt.server import create_app
from wirecrypt.shared import Logger, load_config

config = load_config()

logger = Logger(__name__, level=logging.DEBUG).get_logger()


# ================================================================================
#       FastAPI Setup
# ================================================================================
app = create_app(config)


# ================================================================================
#       Command Line
# ================================================================================
def welcome():
    # Log server banner
    for line in config.general.title.split("\n"):
        logger.info(line)

    # Log server startup information
    logger.info("Starting transport encryption gateway")


def main(argv=None):
    welcome()

    import uvicorn

    uvicorn.run(
        "wirecrypt.main:app",
        host=config.network.host,
        port=config.network.port,
        reload=config.network.reload,
        log_level=logging.getLevelName(config.logging.level).lower(),
    )


if __name__ == "__main__":
    main()
