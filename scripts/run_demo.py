# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""CLI wrapper for :mod:`prm_nav.demo`."""

from prm_nav.demo import main, parse_args, run

__all__ = ["main", "parse_args", "run"]


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
