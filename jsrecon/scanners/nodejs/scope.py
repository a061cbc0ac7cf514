"""Per-file identifier bindings used to resolve request bodies.

A ``ScopeMap`` records, for one file, which identifiers currently hold an
object literal, a form-data builder or a URL-encoded builder, together with
the parameter names known for each. It is flow-insensitive: there is no
block or function scoping, and the most recent binding of a name wins.
A fresh map is created for every file and discarded afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .models import BodyEncoding


class BindingKind(str, Enum):
    """The closed set of value shapes the tracker recognizes."""

    OBJECT_LITERAL = "object_literal"
    FORM_ACCUMULATOR = "form_accumulator"
    URL_ACCUMULATOR = "url_accumulator"

    @property
    def is_accumulator(self) -> bool:
        return self is not BindingKind.OBJECT_LITERAL

    @property
    def encoding(self) -> BodyEncoding:
        """Body encoding implied by sending a value of this shape."""
        return _ENCODINGS[self]


_ENCODINGS = {
    BindingKind.OBJECT_LITERAL: BodyEncoding.JSON,
    BindingKind.FORM_ACCUMULATOR: BodyEncoding.FORM_DATA,
    BindingKind.URL_ACCUMULATOR: BodyEncoding.URLENCODED,
}


@dataclass
class ScopeBinding:
    """What a single identifier is known to hold.

    Attributes:
        identifier: The bound variable name.
        kind: Shape of the bound value.
        keys: Parameter names in the order they were declared or appended.
    """

    identifier: str
    kind: BindingKind
    keys: list[str] = field(default_factory=list)


@dataclass
class ScopeMap:
    """Mapping of identifier to binding for one file."""

    bindings: dict[str, ScopeBinding] = field(default_factory=dict)

    def bind(self, identifier: str, kind: BindingKind, keys: list[str] | None = None) -> ScopeBinding:
        """Bind *identifier*, replacing any previous binding outright."""
        binding = ScopeBinding(identifier=identifier, kind=kind, keys=list(keys or []))
        self.bindings[identifier] = binding
        return binding

    def unbind(self, identifier: str) -> None:
        """Forget *identifier* after it was rebound to an untracked value."""
        self.bindings.pop(identifier, None)

    def get(self, identifier: str) -> ScopeBinding | None:
        return self.bindings.get(identifier)

    def append_key(self, identifier: str, key: str, unique: bool = False) -> bool:
        """Append *key* to an accumulator binding.

        Args:
            identifier: Name the append-style call was made on.
            key: The literal key passed to the call.
            unique: Skip the key if already present (``set`` semantics).

        Returns:
            ``True`` if *identifier* is a bound accumulator, whether or not
            the key was new.
        """
        binding = self.bindings.get(identifier)
        if binding is None or not binding.kind.is_accumulator:
            return False
        if not (unique and key in binding.keys):
            binding.keys.append(key)
        return True

    def __contains__(self, identifier: object) -> bool:
        return identifier in self.bindings

    def __len__(self) -> int:
        return len(self.bindings)
