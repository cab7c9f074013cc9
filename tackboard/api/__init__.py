"""
FILE: tackboard/api/__init__.py
PURPOSE: HTTP command surface and its authentication gate
"""
