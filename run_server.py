import os

import uvicorn

from tracereplay.observability.log_config import configure_logging

if __name__ == "__main__":
    logger = configure_logging(os.environ.get("TRACEREPLAY_LOG_LEVEL", "INFO"))
    logger.info("Starting Trace Replay API Server...")
    logger.info("Docs available at: http://localhost:8000/docs")

    uvicorn.run(
        "tracereplay.api.server:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
