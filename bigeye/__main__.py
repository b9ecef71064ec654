"""
Entry point for running eye as a module: ``python -m bigeye <command>``.
"""

from .cli import main

if __name__ == '__main__':
    main()
