"""Allow running the tool with ``python -m replay_sync``."""

from .main import main

if __name__ == "__main__":
    main()
