"""Module entrypoint for running Talkcast as ``python -m talkcast``."""

from __future__ import annotations

from talkcast.cli import main


if __name__ == "__main__":
    main()
