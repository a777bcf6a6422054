#!/usr/bin/env python
"""
Server Entry Point

Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py
    Gunicorn:     python run_server.py --gunicorn
                  (same as: gunicorn sokonova_analytics.main:app -c gunicorn.conf.py)
"""

import argparse
import os
import subprocess

APP = "sokonova_analytics.main:app"


def run_dev_server(host: str, port: int):
    """Single process with auto-reload."""
    import uvicorn

    uvicorn.run(
        APP,
        host=host,
        port=port,
        reload=True,
        reload_dirs=["sokonova_analytics"],
        log_level="debug",
    )


def run_prod_server(host: str, port: int):
    """Uvicorn workers behind a proxy."""
    import uvicorn

    uvicorn.run(
        APP,
        host=host,
        port=port,
        workers=int(os.getenv("WORKERS", 4)),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        proxy_headers=True,
        forwarded_allow_ips="*",
        server_header=False,
    )


def run_gunicorn(host: str, port: int):
    """Gunicorn master with Uvicorn workers."""
    env = dict(os.environ, BIND=f"{host}:{port}")
    subprocess.run(["gunicorn", APP, "-c", "gunicorn.conf.py"], env=env, check=True)


def main():
    from sokonova_analytics.config import get_settings

    settings = get_settings()

    parser = argparse.ArgumentParser(description="SOKONOVA Seller Analytics API Server")
    parser.add_argument("--dev", action="store_true", help="Auto-reload development server")
    parser.add_argument("--gunicorn", action="store_true", help="Run under Gunicorn")
    parser.add_argument("--host", default=settings.api_host, help="Bind host")
    parser.add_argument("--port", type=int, default=settings.api_port, help="Bind port")
    args = parser.parse_args()

    if args.dev:
        run_dev_server(args.host, args.port)
    elif args.gunicorn:
        run_gunicorn(args.host, args.port)
    else:
        run_prod_server(args.host, args.port)


if __name__ == "__main__":
    main()
