"""Attribute metadata registered under name patterns."""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from typing import Any

from mapmap.core.config import DEFAULT_METADATA

KNOWN_FIELDS = ("label", "domain", "scale", "colors", "undefined_value", "number_format", "value_labels")


@dataclass
class Metadata:
    """Descriptive metadata of one attribute, consumed by symbology and legends."""

    label: str | None = None
    domain: list | None = None
    scale: str = DEFAULT_METADATA["scale"]
    colors: list[str] = field(default_factory=lambda: list(DEFAULT_METADATA["colors"]))
    undefined_value: Any = DEFAULT_METADATA["undefined_value"]
    number_format: str | None = None
    value_labels: list[str] | None = None
    extra: dict = field(default_factory=dict)

    def update(self, fields: dict) -> None:
        """Override known fields with copies of the given values; unknown keys go into extra."""
        for key, value in fields.items():
            value = copy.deepcopy(value)
            if key in KNOWN_FIELDS:
                setattr(self, key, value)
            else:
                self.extra[key] = value

    def to_dict(self) -> dict:
        """Convert metadata to a flat dictionary."""
        result = {name: getattr(self, name) for name in KNOWN_FIELDS}
        result.update(self.extra)
        return result


@dataclass
class MetadataSpec:
    """Metadata fields applying to every attribute name matching a pattern.

    A string pattern may use ``*`` (any run of characters) and ``?`` (any one
    character) and matches attribute names starting with it. A compiled regex
    matches at the start of the name.
    """

    pattern: str | re.Pattern
    fields: dict = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.pattern, re.Pattern):
            self._regex = self.pattern
        else:
            escaped = re.escape(self.pattern).replace(r"\*", ".*").replace(r"\?", ".")
            self._regex = re.compile(escaped)

    def specificity(self) -> int:
        """Number of significant characters; higher wins when several specs match."""
        if isinstance(self.pattern, re.Pattern):
            return len(self.pattern.pattern)
        return len(self.pattern) - self.pattern.count("*") - self.pattern.count("?")

    def match(self, name: str) -> bool:
        """Check whether this spec applies to an attribute name."""
        return self._regex.match(name) is not None


class MetadataRegistry:
    """Ordered set of metadata specs with per-attribute resolution."""

    def __init__(self, defaults: dict | None = None):
        self.defaults = dict(DEFAULT_METADATA if defaults is None else defaults)
        self._specs: list[MetadataSpec] = []
        self._cache: dict[str, Metadata] = {}

    def register(self, specs: dict) -> None:
        """
        Register metadata for attribute name patterns.

        Args:
            specs: Mapping from pattern to metadata fields
        """
        for pattern, fields in specs.items():
            self._specs.append(MetadataSpec(pattern, dict(fields)))
        self._specs.sort(key=lambda spec: spec.specificity())
        self._cache.clear()

    def get(self, name: str) -> Metadata:
        """
        Resolve metadata for an attribute.

        Defaults are applied first, then every matching spec in increasing
        specificity, so the most specific spec wins per field.

        Args:
            name: Attribute name

        Returns:
            Metadata for the attribute (cached)
        """
        if name not in self._cache:
            metadata = Metadata()
            metadata.update(self.defaults)
            for spec in self._specs:
                if spec.match(name):
                    metadata.update(spec.fields)
            self._cache[name] = metadata
        return self._cache[name]
