"""
Entry point for running the nexekit CLI as a module.

Usage: python -m nexekit.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
