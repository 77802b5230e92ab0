"""Entry point for python -m buildgate."""

from buildgate.cli import app

if __name__ == "__main__":
    app()
