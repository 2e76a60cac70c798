"""Entry point: python -m polywrath"""
from __future__ import annotations

from polywrath.main import main

if __name__ == "__main__":
    main()
