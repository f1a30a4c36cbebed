"""Allow ``python -m bundler``."""

from bundler.cli.main import app

if __name__ == "__main__":
    app()
