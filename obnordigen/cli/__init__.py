"""CLI module for obnordigen."""
