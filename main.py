"""chatpgp command-line interface."""

from chatpgp.cli import main

if __name__ == "__main__":
    main()
