"""Render the isolated nuget.config handed to dotnet."""

from __future__ import annotations

import textwrap
from typing import List
from xml.sax.saxutils import quoteattr

from registry.nuget.util import Registry

_NUGET_CONFIG_TEMPLATE = textwrap.dedent("""\
    <?xml version="1.0" encoding="utf-8"?>
    <configuration>
      <packageSources>
        <clear />
    {sources}  </packageSources>
    </configuration>
""")


def create_nuget_config_xml(registries: List[Registry]) -> str:
    """Build nuget.config content listing ``registries`` in order.

    Sources without a name are keyed ``source1``, ``source2``, ...
    """
    lines = []
    unnamed = 0
    for registry in registries:
        name = registry.name
        if not name:
            unnamed += 1
            name = f"source{unnamed}"
        attrs = f"key={quoteattr(name)} value={quoteattr(registry.url)}"
        if registry.protocol_version:
            attrs += f' protocolVersion="{registry.protocol_version}"'
        lines.append(f"    <add {attrs} />\n")
    return _NUGET_CONFIG_TEMPLATE.format(sources="".join(lines))
