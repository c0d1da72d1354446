"""
Package entry point.

Allows running the application via:

    python -m course2cal

This simply forwards execution to course2cal.cli.main().
"""

from course2cal.cli import main

if __name__ == "__main__":
    main()
