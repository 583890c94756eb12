"""Module entrypoint for `python -m panel_schemas`.

Delegates to the validation CLI implementation.
"""

from .run_validate import main


if __name__ == "__main__":
    main()
