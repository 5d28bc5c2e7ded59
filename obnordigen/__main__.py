"""
Entry point for running obnordigen as a module: python -m obnordigen
"""

from obnordigen.cli.commands import app

if __name__ == "__main__":
    app()
