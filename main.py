"""CLI entry point - wrapper so the relay can be started with `python main.py`

The implementation lives in the cli package.
"""

from cli.main import main

if __name__ == "__main__":
    main()
