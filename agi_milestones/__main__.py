"""Main entry point for running a milestone campaign."""

from .cli import main


if __name__ == "__main__":
    main()
