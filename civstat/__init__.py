"""
civstat package
===============

This package contains the Civic Statistics engine (civstat).

- The CLI entry point is in `civstat/cli.py`.
- The row tokenizer (quoted CSV grammar) is in `civstat/tokenizer.py`.
- Dataset loading is in `civstat/loader.py`.
- The memoizing analytics engine is in `civstat/engine.py`.
"""

__version__ = '0.3.0'
