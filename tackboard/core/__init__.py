"""
FILE: tackboard/core/__init__.py
PURPOSE: Board engine, identity registry, persistence and sessions
"""
