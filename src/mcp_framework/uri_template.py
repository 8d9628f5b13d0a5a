"""Minimal URI templates for resource URIs such as ``users://{user_id}/profile``."""

import re
from typing import Dict, List, Optional
from urllib.parse import quote, unquote

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


class UriTemplate:
    """A URI with ``{name}`` placeholders.

    Each placeholder matches one non-empty path segment (no ``/``). Matched
    values are percent-decoded before being handed back.
    """

    def __init__(self, template: str):
        self.template = template
        self.parameters: List[str] = _PLACEHOLDER.findall(template)

        if len(set(self.parameters)) != len(self.parameters):
            raise ValueError(f"Duplicate placeholder in URI template: {template}")

        pattern = []
        position = 0
        for match in _PLACEHOLDER.finditer(template):
            pattern.append(re.escape(template[position:match.start()]))
            pattern.append(f"(?P<{match.group(1)}>[^/]+)")
            position = match.end()
        pattern.append(re.escape(template[position:]))
        self._regex = re.compile("^" + "".join(pattern) + "$")

    @property
    def is_template(self) -> bool:
        return bool(self.parameters)

    def matches(self, uri: str) -> Optional[Dict[str, str]]:
        """Return the placeholder values if uri fits this template, else None."""
        match = self._regex.match(uri)
        if not match:
            return None
        return {name: unquote(value) for name, value in match.groupdict().items()}

    def expand(self, **values: str) -> str:
        missing = [name for name in self.parameters if name not in values]
        if missing:
            raise KeyError(f"Missing URI template values: {', '.join(missing)}")
        return _PLACEHOLDER.sub(lambda m: quote(str(values[m.group(1)]), safe=""), self.template)

    def __repr__(self) -> str:
        return f"UriTemplate({self.template!r})"
