"""
Command-line interface for Flagtrader.
"""

from .commands import cli


def main():
    """Main entry point for the CLI."""
    cli()


__all__ = ['cli', 'main']
