"""
Package entry point.

Allows running the application via:

    python -m edtfeed

This simply forwards execution to edtfeed.cli.main().
"""

from edtfeed.cli import main

if __name__ == "__main__":
    main()
