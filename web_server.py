#!/usr/bin/env python3
"""
Start the EventFlow backend under uvicorn.

The lifecycle runner, display hub and change relay live inside the
application process, so always run a single worker: the staff screens,
the public display and both WebSocket channels share its in-memory state.

Usage:
    python3 web_server.py                    # 127.0.0.1:8000
    python3 web_server.py --host 0.0.0.0     # reachable from display screens
    python3 web_server.py --reload           # development auto-reload
"""

import argparse
import os
import sys
from pathlib import Path

from dotenv import load_dotenv


REPO_ROOT = Path(__file__).parent
ENV_FILE = REPO_ROOT / "backend" / ".env"

ENV_HELP = """
Environment Variables:
  EVENTFLOW_DB_URL                 Database URL (default: sqlite:///./eventflow.db)
  EVENTFLOW_ENV                    production or development
  EVENTFLOW_LOG_LEVEL              DEBUG/INFO/WARNING/ERROR/CRITICAL
  EVENTFLOW_ADMIN_PASSWORD         Admin area password
  EVENTFLOW_REGISTRATION_PASSWORD  Registration desk password
  EVENTFLOW_EVENT_PASSWORD         Event management password
  SESSION_SECRET_KEY               Secret for signing staff session cookies
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run the EventFlow web server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=ENV_HELP,
    )
    parser.add_argument("--host", default="127.0.0.1",
                        help="Bind address (default: 127.0.0.1, use 0.0.0.0 for the venue network)")
    parser.add_argument("--port", type=int, default=8000,
                        help="Bind port (default: 8000)")
    parser.add_argument("--reload", action="store_true",
                        help="Restart on code changes (development only)")
    return parser


def prepare_environment() -> None:
    """
    Make "backend.src.main" importable and load backend/.env.

    Values already present in the process environment win over the file.
    """
    if str(REPO_ROOT) not in sys.path:
        sys.path.insert(0, str(REPO_ROOT))

    if ENV_FILE.exists():
        load_dotenv(dotenv_path=ENV_FILE, override=False)

    if not os.environ.get("SESSION_SECRET_KEY"):
        print(
            "WARNING: SESSION_SECRET_KEY is not set; a random key is used and "
            "staff logins will not survive a restart.",
            file=sys.stderr,
        )


def main() -> None:
    """Exit code 2 when uvicorn is not installed."""
    args = build_parser().parse_args()
    prepare_environment()

    try:
        import uvicorn
    except ImportError:
        print(
            f"ERROR: uvicorn is not installed for {sys.executable}. "
            "Run: pip install -e .",
            file=sys.stderr,
        )
        sys.exit(2)

    base_url = f"http://{args.host}:{args.port}"
    print(f"EventFlow listening on {base_url} (reload {'on' if args.reload else 'off'})")
    print(f"  API docs:       {base_url}/docs")
    print(f"  Public display: {base_url}/api/display")

    try:
        uvicorn.run(
            "backend.src.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level="info",
        )
    except KeyboardInterrupt:
        print("Server stopped")


if __name__ == "__main__":
    main()
