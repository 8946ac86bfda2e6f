"""Runtime package.

Keep this module dependency-light: importing `intentstream.runtime.*` in unit
tests should not open any network connection.
"""

__all__: list[str] = []
