#!/usr/bin/env python3
"""Cross-platform install script for aideplus.

Usage:
    python install.py          # Install into .venv
    python install.py --dev    # Also install the test tools
"""

import os
import platform
import shutil
import subprocess
import sys

MIN_PYTHON = (3, 11)


def main() -> None:
    if sys.version_info < MIN_PYTHON:
        sys.exit(
            f"Error: Python {MIN_PYTHON[0]}.{MIN_PYTHON[1]}+ is required. "
            f"You have {sys.version_info.major}.{sys.version_info.minor}."
        )

    dev = "--dev" in sys.argv
    project_dir = os.path.dirname(os.path.abspath(__file__))
    venv_dir = os.path.join(project_dir, ".venv")
    is_windows = platform.system() == "Windows"
    pip = os.path.join(venv_dir, "Scripts" if is_windows else "bin", "pip")

    if not os.path.isdir(venv_dir):
        print("Creating virtual environment...")
        subprocess.check_call([sys.executable, "-m", "venv", venv_dir])

    subprocess.check_call([pip, "install", "--upgrade", "pip"])
    target = "-e .[dev]" if dev else "."
    print(f"Installing aideplus ({target})...")
    subprocess.check_call([pip, "install", *target.split()], cwd=project_dir)

    for src, dst in [("config.example.yaml", "config.yaml"), (".env.example", ".env")]:
        src_path = os.path.join(project_dir, src)
        dst_path = os.path.join(project_dir, dst)
        if not os.path.exists(dst_path) and os.path.exists(src_path):
            shutil.copy(src_path, dst_path)
            print(f"Created {dst} from {src}")

    activate_cmd = r".\.venv\Scripts\activate" if is_windows else "source .venv/bin/activate"
    print()
    print("Next steps:")
    print("  1. Edit .env and set AIDEPLUS_ACCESS_TOKEN (your session access token)")
    print("  2. Point api.base_url in config.yaml at the AIDE+ server")
    print(f"  3. {activate_cmd}")
    print("  4. python -m aideplus config-check")
    print("  5. python -m aideplus chat")


if __name__ == "__main__":
    main()
