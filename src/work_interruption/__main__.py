"""Entry point when run as a module: python -m work_interruption"""

from .cli.main import main

if __name__ == "__main__":
    main()
