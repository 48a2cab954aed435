"""Entry point for ``python -m eoa_delegate``."""

from eoa_delegate.setup.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
