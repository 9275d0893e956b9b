"""
Entrypoint for the epiode CLI.

    python -m epiode --help

"""
from .cli import cli

cli()
