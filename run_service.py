"""Local runner for the BeatSync service with src/ layout.

Usage: python run_service.py
"""

from __future__ import annotations

import sys
from pathlib import Path


def main() -> None:
    # Ensure src/ is on sys.path so `import beatsync` resolves
    root = Path(__file__).resolve().parent
    src = root / "src"
    if src.exists():
        sys.path.insert(0, str(src))
    from beatsync.service import main as service_main

    service_main()


if __name__ == "__main__":
    main()
