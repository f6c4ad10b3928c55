#!/usr/bin/env python3
"""Run script for incantations."""

import os

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "incantations.api.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "3001")),
        reload=os.getenv("ENVIRONMENT", "development").lower() != "production",
    )
