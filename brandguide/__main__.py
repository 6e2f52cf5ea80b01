"""
Module entry point for: python -m brandguide

Allows running the extractor directly as a module:
    python -m brandguide extract <text_path> [options]
    python -m brandguide sections <text_path>
    python -m brandguide normalize-color <value>
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
