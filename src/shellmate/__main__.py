"""Entry point for ``python -m shellmate``."""

from shellmate.cli.app import app

if __name__ == "__main__":
    app()
