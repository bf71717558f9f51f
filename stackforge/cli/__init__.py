"""Stackforge CLI — Typer-based command-line interface.

Provides the ``stackforge`` command with subcommands for synthesizing
products and inspecting the version manifest and template snapshots.

All output uses Rich for formatted terminal display.
"""
