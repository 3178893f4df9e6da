#!/usr/bin/env python
"""
Test runner for femfield.

Runs pytest through the interpreter executing this script (`python -m pytest`)
so the suite sees the same environment femfield is installed in.

Usage:
    python scripts/run_tests.py              # Run fast suite (default)
    python scripts/run_tests.py -m slow      # Only the slow tests
    python scripts/run_tests.py -x -vv       # Pass debugging flags to pytest
"""

import sys
import subprocess


def main():
    default_args = ["-q", "-m", "not slow"]
    pytest_args = sys.argv[1:] or default_args

    cmd = [sys.executable, "-m", "pytest"] + pytest_args
    print(f"Running: {' '.join(cmd)}", file=sys.stderr)

    result = subprocess.run(cmd)
    sys.exit(result.returncode)


if __name__ == "__main__":
    main()
