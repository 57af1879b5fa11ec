"""
RelayServer class for CLI control of the FastAPI application.
"""
import logging
from typing import Optional

import uvicorn

from dispatcher import TaskManager
from settings import PORT, LOG_LEVEL, BIND_ADDRESS, SESSION_TOKEN, STREAM_TRACE_ENABLED, STREAM_TRACE_DIR
from .app import create_app

logger = logging.getLogger(__name__)


class RelayServer:
    """Relay server wrapper for CLI control"""

    def __init__(self, task_manager: Optional[TaskManager] = None, bind_address: Optional[str] = None):
        self.server = None
        self.config = None
        self.bind_address = bind_address or BIND_ADDRESS
        self.task_manager = task_manager or TaskManager(session_token=SESSION_TOKEN)
        self.app = create_app(self.task_manager)

    def run(self):
        """Run the relay server (blocking)"""
        logger.info(f"Starting ChatGPT Relay on http://{self.bind_address}:{PORT}")
        logger.info("Available endpoints: POST /v1/messages, GET /health")
        if STREAM_TRACE_ENABLED:
            logger.warning(
                "Stream tracing is ENABLED - raw conversation frames will be written inside '%s'",
                STREAM_TRACE_DIR,
            )
        self.config = uvicorn.Config(
            self.app,
            host=self.bind_address,
            port=PORT,
            log_level=LOG_LEVEL,
            access_log=False  # Reduce noise in CLI
        )
        self.server = uvicorn.Server(self.config)
        self.server.run()

    def stop(self):
        """Stop the relay server"""
        if self.server:
            self.server.should_exit = True
