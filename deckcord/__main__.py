"""Allow ``python -m deckcord``."""

from .cli import main

if __name__ == "__main__":
    main()
