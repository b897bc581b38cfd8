"""
Entry point for running the Tutor Store package as a module.

Run with:
    python -m tutor_store
"""

import sys

from tutor_store.interfaces.cli import main

if __name__ == "__main__":
    sys.exit(main())
