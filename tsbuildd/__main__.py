"""Entry point for running the build worker.

The lifecycle coordinator starts this module as `python -m tsbuildd`.
"""

from .cli import worker

if __name__ == "__main__":
    worker()
