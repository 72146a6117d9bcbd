#!/usr/bin/env python3
"""
Order Insights API Startup Script

Starts the ingestion service (FastAPI) locally.
"""

import sys
from pathlib import Path

import uvicorn


def main():
    """Start the ingestion API server."""
    print("Starting Order Insights API Server...")
    print("   POST /api/ai-insights/ingest")
    print("   POST /api/customer-data")
    print("   GET  /health")
    print("")
    print("Documentation: http://localhost:8000/docs")
    print("")

    env_file = Path(".env")
    if not env_file.exists():
        print("WARNING: No .env file found!")
        print("   Create a .env file with these variables:")
        print("   DATABASE_URL=sqlite:///./order_insights.db")
        print("   HMAC_SECRET=shared-secret-with-the-lambda")
        print("")

    try:
        uvicorn.run(
            "order_insights.main:app",
            host="0.0.0.0",
            port=8000,
            reload=True,
            reload_dirs=["order_insights"],
            log_level="info"
        )
    except KeyboardInterrupt:
        print("\nShutting down Order Insights API server...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
