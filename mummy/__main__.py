"""Entry point for running Mummy with `python -m mummy`."""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
