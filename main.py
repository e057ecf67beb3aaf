"""Before/After — dev launcher. Starts the session API in watch mode."""

import argparse
import os
import signal
import subprocess
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = os.getenv("PORT", "13013")


def main():
    parser = argparse.ArgumentParser(description="Before/After dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Local score storage directory (default: ./data)")
    parser.add_argument("--api-base-url", default=None,
                        help="Game backend serving cards, scores and loss media")
    args = parser.parse_args()

    # Build env for the subprocess so create_app() picks up the overrides
    env = os.environ.copy()
    if args.data_dir:
        env["DATA_DIR"] = str(args.data_dir.resolve())
    if args.api_base_url:
        env["API_BASE_URL"] = args.api_base_url

    proc = subprocess.Popen(
        ["uv", "run", "uvicorn", "beforeafter.app:create_app", "--factory",
         "--reload", "--host", HOST, "--port", PORT],
        cwd=ROOT, env=env,
    )

    def shutdown(*_):
        print("\nShutting down...")
        proc.terminate()
        proc.wait()
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    print(f"Starting session API on http://localhost:{PORT} ...")
    proc.wait()


if __name__ == "__main__":
    main()
