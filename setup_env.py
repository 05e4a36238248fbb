#!/usr/bin/env python3
"""Cross-platform setup script for litmusview.

Usage:
    python setup_env.py

Creates a virtual environment, installs dependencies, and verifies the setup.
"""
import os
import subprocess
import sys


def main():
    root = os.path.dirname(os.path.abspath(__file__))
    venv_dir = os.path.join(root, ".venv")

    # Detect platform
    is_windows = sys.platform == "win32"
    if is_windows:
        python = os.path.join(venv_dir, "Scripts", "python.exe")
        pip = os.path.join(venv_dir, "Scripts", "pip.exe")
    else:
        python = os.path.join(venv_dir, "bin", "python")
        pip = os.path.join(venv_dir, "bin", "pip")

    # Step 1: Create venv
    if not os.path.exists(venv_dir):
        print("Creating virtual environment...")
        subprocess.check_call([sys.executable, "-m", "venv", venv_dir])
        print(f"  Created: {venv_dir}")
    else:
        print(f"Virtual environment already exists: {venv_dir}")

    # Step 2: Upgrade pip
    print("\nUpgrading pip...")
    subprocess.check_call([python, "-m", "pip", "install", "--upgrade", "pip"],
                          stdout=subprocess.DEVNULL)

    # Step 3: Install package in editable mode with dev dependencies
    print("Installing litmusview with dev dependencies...")
    subprocess.check_call([pip, "install", "-e", f"{root}[dev]"])

    # Step 4: Smoke test -- build a view and round-trip its share token
    print("\nRunning smoke test (view + share token)...")
    smoke_test = """
from litmusview.controller import ViewController
from litmusview.library import load_model_text
c = ViewController()
v = c.create_view('MP.toml', load_model_text('MP.toml'), 'sc.cat', load_model_text('sc.cat'))
r = c.restore(v.encode_state())
assert r.state.source_text == v.state.source_text
print(f'  {len(c.views)} views, {len(r.observers)} observers restored')
"""
    result = subprocess.run(
        [python, "-c", smoke_test],
        capture_output=True, text=True, cwd=root,
    )
    if result.returncode != 0:
        print("  Smoke test FAILED:")
        print(f"  {result.stderr.strip()}")
        return 1
    else:
        print(result.stdout.strip())

    # Step 5: Success
    print("\n" + "=" * 50)
    print("Setup complete!")
    print("=" * 50)
    if is_windows:
        activate = ".venv\\Scripts\\activate"
    else:
        activate = "source .venv/bin/activate"
    print(f"\nTo activate:  {activate}")
    print("To launch:    python -m litmusview")
    print("To test:      pytest")
    print("Web UI:       http://localhost:8050")
    print("Service:      set LITMUSVIEW_SERVICE_URL (default http://localhost:8000)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
