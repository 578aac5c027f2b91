"""StoryWizard dev launcher. Runs the API with reload (and the frontend, if one is checked out)."""

import argparse
import logging
import os
import signal
import subprocess
import sys
from pathlib import Path

from storywizard.config import load_settings

ROOT = Path(__file__).parent
settings = load_settings(ROOT / ".env")


def seed_demo(data_dir: Path) -> None:
    from backend.demo import create_demo_data
    from storywizard.gateway import UnconfiguredGateway
    from storywizard.storage import KeyValueStore
    from storywizard.workspace import Workspace

    create_demo_data(Workspace(KeyValueStore(data_dir), UnconfiguredGateway()))


def main():
    parser = argparse.ArgumentParser(description="StoryWizard dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Where stories and accounts are kept (default: DATA_DIR or ./data)")
    parser.add_argument("--demo", action="store_true",
                        help="Rebuild the demo account's library before starting")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    data_dir = Path(args.data_dir or settings.data_dir).resolve()
    if args.demo:
        seed_demo(data_dir)

    # the reloading uvicorn worker re-reads settings, so hand it the resolved data dir
    child_env = {**os.environ, "DATA_DIR": str(data_dir)}
    children: list[subprocess.Popen] = []

    def stop(*_):
        print("\nStopping StoryWizard...")
        for child in children:
            child.terminate()
        for child in children:
            child.wait()
        sys.exit(0)

    signal.signal(signal.SIGINT, stop)
    signal.signal(signal.SIGTERM, stop)

    print(f"API on http://localhost:{settings.backend_port}/api (data: {data_dir})")
    children.append(subprocess.Popen(
        ["uv", "run", "uvicorn", "backend.app:create_app", "--factory", "--reload",
         "--host", settings.host, "--port", settings.backend_port],
        cwd=ROOT, env=child_env,
    ))

    frontend = ROOT / "frontend"
    if frontend.is_dir():
        frontend_port = os.getenv("FRONTEND_PORT", "13014")
        print(f"Frontend on http://localhost:{frontend_port}")
        children.append(subprocess.Popen(
            ["bun", "run", "dev", "--port", frontend_port],
            cwd=frontend, env=child_env,
        ))

    for child in children:
        child.wait()


if __name__ == "__main__":
    main()
