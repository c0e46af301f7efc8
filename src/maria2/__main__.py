"""Entry point for ``python -m maria2``."""

from .cli import main

if __name__ == "__main__":
    main()
