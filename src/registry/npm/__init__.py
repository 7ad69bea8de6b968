"""npm ecosystem support.

- npmrc.py: .npmrc resolution and scoped registry config for npm and yarn
- artifacts.py: package-lock.json / yarn.lock regeneration
"""

from .artifacts import NpmToolchain, YarnToolchain  # noqa: F401
from .npmrc import (  # noqa: F401
    get_registry_npmrc_lines,
    get_registry_yarnrc_scopes,
    resolve_npmrc,
)

__all__ = [
    "NpmToolchain",
    "YarnToolchain",
    "resolve_npmrc",
    "get_registry_npmrc_lines",
    "get_registry_yarnrc_scopes",
]
