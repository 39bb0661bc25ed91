"""Module entry point: python -m track_history ..."""

from __future__ import annotations

from track_history.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
