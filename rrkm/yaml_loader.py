from __future__ import annotations

from pathlib import Path

import yaml

from .exceptions import UnopenedFileException


class NoBoolSafeLoader(yaml.SafeLoader):
    """YAML loader that avoids implicit boolean conversion (e.g., 'NO')."""


# Strip the bool resolver so plain scalars like "NO" stay as strings.
for first, mappings in list(NoBoolSafeLoader.yaml_implicit_resolvers.items()):
    NoBoolSafeLoader.yaml_implicit_resolvers[first] = [
        (tag, regexp) for tag, regexp in mappings if tag != "tag:yaml.org,2002:bool"
    ]


def safe_load_no_bool(text: str):
    """Load YAML text without implicit bool conversions."""
    return yaml.load(text, Loader=NoBoolSafeLoader)


def load_document(source):
    """Load a model document from a path or from YAML text."""
    if isinstance(source, Path) or (isinstance(source, str) and "\n" not in source and source.endswith((".yaml", ".yml"))):
        path = Path(source)
        if not path.exists():
            raise UnopenedFileException(f"Could not open model file {path}")
        source = path.read_text()
    try:
        return safe_load_no_bool(source.replace("\t", " "))
    except yaml.YAMLError as exc:
        raise UnopenedFileException(f"Failed to parse model document: {exc}") from exc
