"""outcapture entry point.

Supports: python -m outcapture
"""

from .app import run

if __name__ == "__main__":
    run()
