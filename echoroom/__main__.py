"""Entry point for `python -m echoroom`."""

from echoroom.cli import main

if __name__ == "__main__":
    main()
