"""Entry point for running Partialkit as a module.

Usage:
    python -m partialkit [command] [options]

Example:
    python -m partialkit render users/index --data users.yaml
    python -m partialkit locals users/user
"""

from partialkit.cli import app

if __name__ == "__main__":
    app()
