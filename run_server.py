#!/usr/bin/env python
"""
Production Server Entry Point

Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py

    Or with Gunicorn:
    gunicorn beacon_analytics.main:app -c gunicorn.conf.py

A single worker process is the default: the admission windows live in process
memory, so every worker would enforce its own ceiling.
"""

import argparse
import os


def run_dev_server():
    """Run development server with auto-reload."""
    import uvicorn

    uvicorn.run(
        "beacon_analytics.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=True,
        reload_dirs=["beacon_analytics"],
        log_level="debug",
        access_log=True,
    )


def run_prod_server():
    """Run production server with Uvicorn directly."""
    import uvicorn

    uvicorn.run(
        "beacon_analytics.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        workers=int(os.getenv("WORKERS", 1)),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        access_log=True,
        proxy_headers=True,
        forwarded_allow_ips="*",
        server_header=False,
        date_header=True,
    )


def run_gunicorn():
    """Run with Gunicorn."""
    import subprocess

    subprocess.run(["gunicorn", "beacon_analytics.main:app", "-c", "gunicorn.conf.py"], check=True)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Lightweight Web Analytics Server")
    parser.add_argument("--dev", action="store_true", help="Run in development mode with auto-reload")
    parser.add_argument("--gunicorn", action="store_true", help="Run with Gunicorn")
    parser.add_argument("--port", type=int, default=8000, help="Port to run on (default: 8000)")

    args = parser.parse_args()
    os.environ["PORT"] = str(args.port)

    if args.dev:
        print("🚀 Starting development server...")
        run_dev_server()
    elif args.gunicorn:
        print("🚀 Starting production server with Gunicorn...")
        run_gunicorn()
    else:
        print("🚀 Starting production server with Uvicorn...")
        run_prod_server()
