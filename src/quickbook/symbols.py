"""Macro and template symbol tables, and the expansion re-entrancy guard."""

from __future__ import annotations

from dataclasses import dataclass, field

from quickbook.cursor import Position
from quickbook.errors import ExpansionError

# Each level re-enters the grammar; must stay well inside the interpreter's
# default recursion limit.
MAX_EXPANSION_DEPTH = 32


@dataclass(frozen=True, slots=True)
class Macro:
    """An unparameterized definition; the body is re-parsed at each invocation."""

    name: str
    body: str
    position: Position | None = None


@dataclass(frozen=True, slots=True)
class Template:
    """A parameterized definition closed over the scope it was defined in."""

    name: str
    params: tuple[str, ...]
    body: str
    scope: Scope
    block: bool = False
    position: Position | None = None


@dataclass(frozen=True, slots=True)
class Argument:
    """A template argument, already rendered in the caller's scope."""

    name: str
    rendered: str


Definition = Macro | Template | Argument


@dataclass(eq=False)
class Scope:
    """One level of the symbol table; lookups walk outward through ``parent``."""

    parent: Scope | None = None
    macros: dict[str, Macro] = field(default_factory=dict)
    templates: dict[str, Template | Argument] = field(default_factory=dict)

    def child(self) -> Scope:
        return Scope(parent=self)

    def lookup(self, name: str) -> Definition | None:
        scope: Scope | None = self
        while scope is not None:
            found = scope.templates.get(name)
            if found is not None:
                return found
            macro = scope.macros.get(name)
            if macro is not None:
                return macro
            scope = scope.parent
        return None

    def define_macro(self, macro: Macro) -> None:
        # Later definitions shadow earlier ones of the same name.
        self.templates.pop(macro.name, None)
        self.macros[macro.name] = macro

    def define_template(self, template: Template | Argument) -> None:
        self.macros.pop(template.name, None)
        self.templates[template.name] = template


class ActiveOrigins:
    """Set of origins (file paths, macro and template names) being expanded.

    Entering an origin that is already active is a cycle.
    """

    def __init__(self, max_depth: int = MAX_EXPANSION_DEPTH) -> None:
        self.max_depth = max_depth
        self._active: set[str] = set()
        self._stack: list[str] = []

    @property
    def stack(self) -> list[str]:
        return list(self._stack)

    def enter(self, key: str, position: Position | None = None, label: str | None = None) -> None:
        label = label or key
        if key in self._active:
            raise ExpansionError(
                f"Infinite recursion detected while expanding: {label}",
                position,
                call_stack=self.stack + [label],
            )
        if len(self._stack) >= self.max_depth:
            raise ExpansionError(
                f"Expansion depth limit ({self.max_depth}) exceeded",
                position,
                call_stack=self.stack,
            )
        self._active.add(key)
        self._stack.append(label)

    def leave(self, key: str) -> None:
        self._active.discard(key)
        self._stack.pop()
