#!/usr/bin/env python3
"""
Single executable to start the Elliott Wave Analyzer API.
Checks dependencies, prepares the data directory and launches the backend
with uvicorn.
"""

import argparse
import importlib.util
import os
import subprocess
import sys
from pathlib import Path

# Distribution name -> import name
REQUIRED_PACKAGES = [
    ("numpy", "numpy"),
    ("pandas", "pandas"),
    ("PyYAML", "yaml"),
    ("aiohttp", "aiohttp"),
    ("fastapi", "fastapi"),
    ("pydantic", "pydantic"),
    ("uvicorn", "uvicorn"),
]


def prepare_directories():
    """Create the directories the system writes to."""
    for dir_name in ("data", "reports"):
        os.makedirs(dir_name, exist_ok=True)
        print(f"  ✅ Ensured {dir_name}/ directory exists")


def check_dependencies() -> bool:
    """Check if required dependencies are available."""
    print("🔍 Checking dependencies...")
    missing_packages = []

    for package_name, import_name in REQUIRED_PACKAGES:
        if importlib.util.find_spec(import_name) is None:
            missing_packages.append(package_name)
            print(f"  ❌ {package_name} missing")
        else:
            print(f"  ✅ {package_name} found")

    if missing_packages:
        print(f"\n⚠️  Missing packages: {', '.join(missing_packages)}")
        print("Please install them with: pip install " + " ".join(missing_packages))
        return False

    print("✅ All dependencies satisfied\n")
    return True


def build_command(host: str, port: int, reload: bool = False):
    cmd = [sys.executable, "-m", "uvicorn", "backend.main:app", "--host", host, "--port", str(port)]
    if reload:
        cmd.append("--reload")
    return cmd


def start_backend(port: int = 8000, host: str = "127.0.0.1", reload: bool = False) -> bool:
    """Start the backend server."""
    print(f"🚀 Starting Elliott Wave Analyzer backend on {host}:{port}")
    print("Press Ctrl+C to stop the server\n")

    project_dir = Path(__file__).parent
    os.chdir(project_dir)

    env = os.environ.copy()
    env["PYTHONPATH"] = str(project_dir)

    cmd = build_command(host, port, reload)
    print(f"🔧 Starting with command: {' '.join(cmd)}")

    try:
        result = subprocess.run(cmd, env=env)
    except OSError as e:
        print(f"❌ Error starting backend: {e}")
        return False

    if result.returncode != 0:
        print(f"❌ Backend exited with code {result.returncode}")
    return result.returncode == 0


def main():
    parser = argparse.ArgumentParser(description="Start the Elliott Wave Analyzer API")
    parser.add_argument("--port", type=int, default=8000, help="Port to run the backend on (default: 8000)")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--reload", action="store_true", help="Restart the server on code changes")
    parser.add_argument("--skip-deps", action="store_true", help="Skip dependency checking")
    args = parser.parse_args()

    print("🌟 Elliott Wave Analyzer - System Launcher")
    print("=" * 50)

    prepare_directories()
    if not args.skip_deps and not check_dependencies():
        print("\n❌ Dependency check failed. Exiting.")
        return 1

    try:
        if not start_backend(args.port, args.host, args.reload):
            print("\n❌ System startup failed")
            return 1
    except KeyboardInterrupt:
        print("\n🛑 System interrupted by user")

    print("\n✅ System shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
