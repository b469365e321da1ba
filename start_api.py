#!/usr/bin/env python3
"""
Startup script for the Directory Recommendations API.
"""

import logging

import uvicorn

if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger = logging.getLogger("start_api")
    logger.info("Starting Directory Recommendations API...")
    logger.info("API Documentation: http://localhost:8000/docs")
    logger.info("Health Check: http://localhost:8000/health")

    uvicorn.run(
        "directory_recs.api:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
