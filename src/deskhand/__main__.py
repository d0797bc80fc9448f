"""deskhand CLI bootstrap."""

from deskhand.cli import app

if __name__ == "__main__":
    app()
