"""Entry point for `python -m mdterm`"""

from mdterm.cli.cli import app

if __name__ == "__main__":
    app()
