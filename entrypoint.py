import uvicorn
from constants import HOST, PORT, LOG_LEVEL, LOG_FILE, RELOAD
from logging_config import setup_logging, get_logger

# Setup logging before importing app
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)

logger = get_logger(__name__)


def main():
    logger.info(f"Starting Karaoke Connect relay on {HOST}:{PORT}")
    logger.info(f"PC Controller: http://localhost:{PORT}")
    logger.info(f"Phone Microphone: http://localhost:{PORT}/phone.html")
    uvicorn.run("app:app", host=HOST, port=PORT, reload=RELOAD)


if __name__ == "__main__":
    main()
