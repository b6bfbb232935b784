"""
Entry point for running nexekit as a module.

Usage: python -m nexekit [command] [options]
"""

from nexekit.cli.parser import main

if __name__ == "__main__":
    main()
