"""Allow ``python -m kiln`` as an alias for the ``kiln`` command."""

from .cli import cli


def main():
    cli(prog_name="kiln")


if __name__ == "__main__":  # pragma: no cover
    main()
