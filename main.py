# main.py

import logging

import uvicorn

from ev_admin_system.core.config import get_settings

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    settings = get_settings()
    logger.info(f"Starting EV admin back-office API on {settings.api_host}:{settings.api_port}...")
    uvicorn.run("ev_admin_system.main:app", host=settings.api_host, port=settings.api_port,
                log_level=settings.log_level.lower())
