"""
FILE: tackboard/cli/__init__.py
PURPOSE: Typer one-shot commands
"""
