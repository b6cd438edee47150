"""Entry point for running the categorizer as a module.

Usage:
    python -m categorizer classify email.txt
    python -m categorizer --help
"""

from categorizer.cli import main

if __name__ == "__main__":
    main()
