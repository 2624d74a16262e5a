"""Allow ``python -m CrptKit.DocumentSubmission``."""

from CrptKit.DocumentSubmission.cli import app

if __name__ == "__main__":
    app()
