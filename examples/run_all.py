"""Run all Python example scripts."""
from __future__ import annotations

import subprocess
import sys
from pathlib import Path

EXAMPLE_ROOT = Path(__file__).resolve().parent


def main() -> None:
    scripts = [
        EXAMPLE_ROOT / "basic" / "basic_test.py",
        EXAMPLE_ROOT / "species" / "rrho_states.py",
        EXAMPLE_ROOT / "species" / "multirotor_states.py",
        EXAMPLE_ROOT / "model" / "model_summary.py",
    ]
    for script in scripts:
        print(f"Running {script} ...")
        result = subprocess.run([sys.executable, str(script)], check=False)
        if result.returncode != 0:
            raise SystemExit(f"{script} failed with exit code {result.returncode}")


if __name__ == "__main__":
    main()
