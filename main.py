"""Entrypoint to run the capture pipeline from the command line."""
from bujo_capture.cli import main as cli_main


def main() -> None:
    cli_main()


if __name__ == "__main__":
    main()
