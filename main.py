"""
main.py: Server launcher and entry point.

Run this file to start the API server:

    python main.py

This file does NOT contain application logic. See app.py for the FastAPI
application, service wiring, and startup sequence.

The Streamlit dashboard runs separately against the API:
    streamlit run dashboard/app.py
"""

from __future__ import annotations

import os

import uvicorn


HOST = os.getenv("HK_HOST", "127.0.0.1")
PORT = int(os.getenv("HK_PORT", "8000"))


def main() -> None:
    """Start the housekeeping scheduler API."""
    print("=" * 60)
    print("  Housekeeping Shift Scheduler")
    print("=" * 60)
    print(f"  Server   : http://{HOST}:{PORT}")
    print(f"  API docs : http://{HOST}:{PORT}/docs")
    print("=" * 60)
    print("  Press CTRL+C to stop\n")

    uvicorn.run(
        "app:app",
        host=HOST,
        port=PORT,
        reload=True,
        log_level="info",
    )


if __name__ == "__main__":
    main()
