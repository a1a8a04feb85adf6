"""accterm CLI entry point."""

from accterm.cli.app import app

if __name__ == "__main__":
    app()
