"""CLI entry point for the prediction staking bot.

All command logic lives in the cli subpackage.
"""

from prediction_tools.apps.prediction.cli import app

__all__ = ["app", "main"]


def main() -> None:
    """Run the prediction bot CLI application."""
    app()


if __name__ == "__main__":
    main()
