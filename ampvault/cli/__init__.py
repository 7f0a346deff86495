"""ampvault CLI — Typer-based command-line interface.

Provides the ``ampvault`` command with subcommand groups for projects and
artifacts, a garbage-collection pass and an assistant runner.

Tables and panels use Rich; ids and tab-separated listings are printed
plainly for scripting.
"""
