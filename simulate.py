"""CLI entrypoint for running milestone campaigns."""

from agi_milestones.cli import main


if __name__ == "__main__":
    main()
