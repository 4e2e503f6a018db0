"""Entry point for `python -m devday` and the `devday` console script."""

import sys


def main():
    from devday.app import run
    sys.exit(run())


if __name__ == "__main__":
    main()
