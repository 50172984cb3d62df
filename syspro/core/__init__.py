"""
Core helpers package for the SYSPRO client.

This package contains low-level infrastructure such as configuration,
per-context HTTP connections, the retry policy and the request log
context.  Keeping these helpers in a dedicated package makes it easy to
swap implementations or customise behaviour for testing.
"""

__all__ = []
