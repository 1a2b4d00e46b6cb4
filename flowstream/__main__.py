"""Allow ``python -m flowstream``."""

from flowstream.cli import main

if __name__ == "__main__":
    main()
