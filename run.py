#!/usr/bin/env python3
"""
Run script for the storefront API.
Launches the FastAPI application with uvicorn using the environment settings.
"""
import sys
import traceback

import uvicorn

from storefront.config import Settings

if __name__ == "__main__":
    try:
        settings = Settings.from_env()
        print("Starting storefront API server...")
        print(f"Access the API at http://localhost:{settings.port}{settings.api_prefix}")
        print(f"API documentation at http://localhost:{settings.port}/docs")

        uvicorn.run(
            "storefront.main:app",
            host=settings.host,
            port=settings.port,
            reload=not settings.is_production,
            log_level=settings.log_level.lower(),
        )
    except Exception as e:
        print(f"Error starting server: {e}")
        traceback.print_exc()
        sys.exit(1)
