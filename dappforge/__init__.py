"""
dappforge: compiles a blueprint graph of capability nodes into a generated project tree.
"""

__version__ = "0.1.0"
