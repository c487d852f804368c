from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Optional, Union

log = logging.getLogger(__name__)

# Section index -> load base of the image the section belongs to, None while the layout is not known yet
SectionLayout = Callable[[int], Optional[int]]


class ImageBaseLayout:
    """Section layout lookup for a PE image where every section RVA is relative to the same image base.

    Args:
        image_base: The address the image is loaded at.
    """

    def __init__(self, image_base: int):
        self.image_base = image_base

    def __call__(self, section: int) -> Optional[int]:
        return self.image_base

    def __repr__(self) -> str:
        return f"<ImageBaseLayout image_base={self.image_base:#x}>"


@dataclass
class ApplicatorOptions:
    """Options that influence how the symbol records are applied.

    Attributes:
        descend_scopes: Apply the records inside procedures, blocks and thunks. When disabled the stream jumps straight
            to the end record of a scope.
        report_unclosed_scopes: Report a fault for scopes that are still open at the end of the stream.
    """

    descend_scopes: bool = True
    report_unclosed_scopes: bool = True


@dataclass
class SectionDescriptor:
    index: int
    rva: int
    length: int
    characteristics: int = 0
    alignment: int = 0
    name: str = ""
    # Absolute address, None while the section layout is not known
    base: Optional[int] = None

    @property
    def resolved(self) -> bool:
        return self.base is not None

    @property
    def alignment_bytes(self) -> int:
        return 1 << self.alignment

    def contains(self, offset: int) -> bool:
        return 0 <= offset < self.length


@dataclass
class GroupContribution:
    section: int
    offset: int
    length: int
    address: Optional[int] = None


@dataclass
class CoffGroup:
    """A named COFF group (e.g. ``.text$mn``) and the section ranges it spans."""

    name: str
    characteristics: int = 0
    contributions: list[GroupContribution] = field(default_factory=list)

    @property
    def sections(self) -> list[int]:
        return list(dict.fromkeys(contribution.section for contribution in self.contributions))


@dataclass
class CompileUnit:
    name: str
    signature: int = 0
    language: Optional[int] = None
    machine: Optional[int] = None
    version: str = ""
    position: int = 0


class ScopeKind(enum.Enum):
    PROCEDURE = "procedure"
    BLOCK = "block"
    THUNK = "thunk"
    INLINE_SITE = "inline site"


@dataclass
class RecoveredSymbol:
    kind: int
    name: str
    section: int
    offset: int
    address: Optional[int] = None
    type_index: int = 0
    flags: int = 0
    position: int = 0
    module: Optional[str] = None
    scope: Optional[Scope] = field(default=None, compare=False, repr=False)


@dataclass
class Scope:
    """A lexical scope recovered from a begin record: a procedure, block, thunk or inline site."""

    kind: ScopeKind
    name: str
    section: int = 0
    offset: int = 0
    length: int = 0
    address: Optional[int] = None
    type_index: int = 0
    flags: int = 0
    position: int = 0
    module: Optional[str] = None
    closed: bool = False
    children: list[Scope] = field(default_factory=list)
    symbols: list[RecoveredSymbol] = field(default_factory=list)
    parent: Optional[Scope] = field(default=None, compare=False, repr=False)

    def walk(self) -> Iterator[Scope]:
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass
class ScopeFrame:
    """An open scope on the scope stack.

    Attributes:
        scope: The scope that was opened.
        end_kinds: The symbol kinds of the records that close this scope.
        end_offset: The byte offset of the end record, as stored in the begin record.
        parent: The frame below this one on the stack.
    """

    scope: Scope
    end_kinds: frozenset[int]
    end_offset: Optional[int] = None
    parent: Optional[ScopeFrame] = field(default=None, compare=False, repr=False)

    @property
    def kind(self) -> ScopeKind:
        return self.scope.kind

    @property
    def address(self) -> Optional[int]:
        return self.scope.address

    def closed_by(self, kind: int) -> bool:
        return int(kind) in self.end_kinds


@dataclass
class ScopeStack:
    frames: list[ScopeFrame] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self) -> Iterator[ScopeFrame]:
        return iter(self.frames)

    @property
    def top(self) -> Optional[ScopeFrame]:
        return self.frames[-1] if self.frames else None

    def push(self, scope: Scope, end_kinds: Iterable[int], end_offset: Optional[int] = None) -> ScopeFrame:
        frame = ScopeFrame(
            scope=scope,
            end_kinds=frozenset(int(kind) for kind in end_kinds),
            end_offset=end_offset,
            parent=self.top,
        )
        self.frames.append(frame)
        return frame

    def close(self, end_kind: int) -> tuple[Optional[ScopeFrame], list[ScopeFrame]]:
        """Close the most recent frame that is closed by an end record of ``end_kind``.

        Frames above the matching frame are discarded. If no frame matches, the stack is cleared.

        Args:
            end_kind: The symbol kind of the end record.

        Returns:
            The closed frame, or ``None`` if no frame matched, and the discarded frames from top to bottom.
        """

        for depth in range(len(self.frames) - 1, -1, -1):
            frame = self.frames[depth]
            if frame.closed_by(end_kind):
                discarded = self.frames[depth + 1 :][::-1]
                del self.frames[depth:]
                frame.scope.closed = True
                return frame, discarded

        discarded = self.frames[::-1]
        self.frames.clear()
        return None, discarded


Locatable = Union[GroupContribution, RecoveredSymbol, Scope]


@dataclass
class ApplicatorContext:
    """The state of a single symbol application run.

    The section table maps section indices to their `SectionDescriptor`. The translation table (``addresses``) maps
    section indices to absolute base addresses and is only filled when a section layout lookup is available. Items
    that reference a section that is not registered or not resolved yet keep ``address = None`` and are listed in
    ``unresolved``; the context itself never retries them.

    Args:
        layout: Section index to load base lookup, ``None`` disables address translation.
        options: The `ApplicatorOptions` for the run.
    """

    layout: Optional[SectionLayout] = field(default=None, compare=False, repr=False)
    options: ApplicatorOptions = field(default_factory=ApplicatorOptions, compare=False)
    sections: dict[int, SectionDescriptor] = field(default_factory=dict)
    addresses: dict[int, int] = field(default_factory=dict)
    groups: dict[str, CoffGroup] = field(default_factory=dict)
    scopes: list[Scope] = field(default_factory=list)
    symbols: list[RecoveredSymbol] = field(default_factory=list)
    compile_units: list[CompileUnit] = field(default_factory=list)
    stack: ScopeStack = field(default_factory=ScopeStack)
    unresolved: list[Locatable] = field(default_factory=list)

    @property
    def translation_enabled(self) -> bool:
        return self.layout is not None

    @property
    def pending_sections(self) -> list[SectionDescriptor]:
        return [section for section in self.sections.values() if not section.resolved]

    @property
    def current_scope(self) -> Optional[Scope]:
        frame = self.stack.top
        return frame.scope if frame else None

    @property
    def current_unit(self) -> Optional[CompileUnit]:
        return self.compile_units[-1] if self.compile_units else None

    def add_section(self, section: SectionDescriptor) -> None:
        """Register a section, replacing an earlier descriptor with the same index."""

        if section.index in self.sections:
            log.debug("Updating section %d (%s)", section.index, section.name)
            self.addresses.pop(section.index, None)

        self.sections[section.index] = section
        self._resolve_section(section)

    def _resolve_section(self, section: SectionDescriptor) -> bool:
        if self.layout is None:
            return False

        load_base = self.layout(section.index)
        if load_base is None:
            log.debug("Layout of section %d (%s) not known yet, resolution deferred", section.index, section.name)
            return False

        section.base = load_base + section.rva
        self.addresses[section.index] = section.base
        return True

    def resolve_sections(self) -> int:
        """Retry the layout lookup for all sections without a base address.

        Returns:
            The amount of sections that were resolved.
        """

        return sum(self._resolve_section(section) for section in self.pending_sections)

    def translate(self, section: int, offset: int) -> Optional[int]:
        """Translate a section relative offset to an absolute address, ``None`` if the section base is unknown."""

        base = self.addresses.get(section)
        if base is None:
            return None
        return base + offset

    def locate(self, item: Locatable) -> Optional[int]:
        """Set the absolute address of ``item``, or mark it as unresolved."""

        section = self.sections.get(item.section)
        if section is not None and not section.contains(item.offset):
            log.debug("Offset %#x lies outside section %d of %#x bytes", item.offset, item.section, section.length)

        item.address = self.translate(item.section, item.offset)
        if item.address is None:
            self.unresolved.append(item)
        return item.address

    def retry_unresolved(self) -> int:
        """Translate the unresolved items again, for example after late sections were registered.

        Returns:
            The amount of items that were resolved.
        """

        remaining = []
        for item in self.unresolved:
            item.address = self.translate(item.section, item.offset)
            if item.address is None:
                remaining.append(item)

        resolved = len(self.unresolved) - len(remaining)
        self.unresolved = remaining
        return resolved

    def add_group_contribution(self, name: str, characteristics: int, contribution: GroupContribution) -> CoffGroup:
        group = self.groups.get(name)
        if group is None:
            group = self.groups[name] = CoffGroup(name=name, characteristics=characteristics)

        group.contributions.append(contribution)
        self.locate(contribution)
        return group

    def open_scope(self, scope: Scope, end_kinds: Iterable[int], end_offset: Optional[int] = None) -> ScopeFrame:
        """Attach ``scope`` to the current scope (or the top level) and push a frame for it."""

        parent = self.current_scope
        scope.parent = parent
        scope.module = self.current_unit.name if self.current_unit else None
        (parent.children if parent else self.scopes).append(scope)

        return self.stack.push(scope, end_kinds, end_offset)

    def add_symbol(self, symbol: RecoveredSymbol) -> None:
        scope = self.current_scope
        symbol.scope = scope
        symbol.module = self.current_unit.name if self.current_unit else None
        if scope:
            scope.symbols.append(symbol)
        self.symbols.append(symbol)

    def add_compile_unit(self, unit: CompileUnit) -> None:
        self.compile_units.append(unit)

    def walk_scopes(self) -> Iterator[Scope]:
        for scope in self.scopes:
            yield from scope.walk()
