#!/usr/bin/env python3
"""Run script for pairplan."""

import os

import uvicorn

from pairplan.database.database import init_db

if __name__ == "__main__":
    init_db()
    uvicorn.run(
        "pairplan.api.app:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        reload=os.getenv("RELOAD", "True").lower() == "true",
    )
