"""
Type table: the queryable view of every type the generator knows about.

Types come from two places: declarations parsed out of the C# sources
(see ``csharp.declare_types``) and JSON symbol files describing types that
live in referenced assemblies.
"""
import json
import logging
import re
from pathlib import Path

from mmhook_generator.model import MemberKind, MemberSymbol, MethodSymbol, TypeSymbol

logger = logging.getLogger(__name__)

# C# keyword types stay as written; they are valid in any namespace
KEYWORD_TYPES = frozenset({
    'bool', 'byte', 'sbyte', 'char', 'decimal', 'double', 'float', 'int', 'uint',
    'nint', 'nuint', 'long', 'ulong', 'short', 'ushort', 'object', 'string',
    'dynamic', 'void',
})

re_array_suffix = re.compile(r'(?:\[[\s,]*\])+$')
re_whitespace = re.compile(r'\s+')
# tuple element with a name: 'List<int> items'
re_tuple_element = re.compile(r'^(.+?)\s+([A-Za-z_]\w*)$')


class SymbolFileError(ValueError):
    """Raised when a JSON symbol file cannot be loaded."""


def split_type_arguments(text):
    """Split a generic argument list on top-level commas.

    ``'int, Dictionary<string, List<int>>'`` -> ``['int', 'Dictionary<string, List<int>>']``
    """
    parts = []
    depth = 0
    buf = ''
    for ch in text:
        if ch in '<([':
            depth += 1
        elif ch in '>)]':
            depth -= 1
        if ch == ',' and depth == 0:
            parts.append(buf.strip())
            buf = ''
        else:
            buf += ch
    if buf.strip():
        parts.append(buf.strip())
    return parts


class TypeTable:
    """Types keyed by metadata name (``Game.Player+Stats``).

    A second index maps the dotted path (``Game.Player.Stats``) used by hook
    references to the first type registered under it.
    """

    def __init__(self):
        self._types = {}
        self._by_path = {}

    def __len__(self):
        return len(self._types)

    def __iter__(self):
        return iter(self._types.values())

    def __contains__(self, full_name):
        return self.lookup_type(full_name) is not None

    def add(self, symbol):
        """Register a type, merging partial declarations of the same type.

        Returns the symbol that is now stored under the type's metadata name.
        """
        existing = self._types.get(symbol.metadata_name)
        if existing is None:
            self._types[symbol.metadata_name] = symbol
            self._by_path.setdefault(symbol.full_name, symbol)
            return symbol
        existing.members.extend(symbol.members)
        for imported in symbol.imports:
            if imported not in existing.imports:
                existing.imports.append(imported)
        for alias, target in symbol.aliases.items():
            existing.aliases.setdefault(alias, target)
        return existing

    def lookup_type(self, full_name):
        if not full_name:
            return None
        symbol = self._types.get(full_name)
        if symbol is None:
            symbol = self._by_path.get(full_name.replace('+', '.'))
        return symbol

    def qualify(self, type_text, context=None):
        """Return the display form of a type as written in source.

        Names found in the table come back ``global::`` qualified, keywords
        and unknown names come back as written.
        """
        text = (type_text or '').strip()
        if not text or text.startswith('global::'):
            return text
        m = re_array_suffix.search(text)
        if m:
            return self.qualify(text[:m.start()], context) + re_whitespace.sub('', m.group(0))
        if text[-1] in '?*':
            return self.qualify(text[:-1], context) + text[-1]
        if text[0] == '(' and text[-1] == ')':
            elements = [self._qualify_tuple_element(e, context)
                        for e in split_type_arguments(text[1:-1])]
            return f"({', '.join(elements)})"
        if text in KEYWORD_TYPES:
            return text
        if text.endswith('>') and '<' in text:
            lt = text.find('<')
            base = re_whitespace.sub('', text[:lt])
            args = [self.qualify(a, context) for a in split_type_arguments(text[lt + 1:-1])]
            found = self.find(f'{base}`{len(args)}', context)
            if found is not None:
                base = found.display_name
            return f"{base}<{', '.join(args)}>"
        name = re_whitespace.sub('', text)
        target = _expand_alias(name, context)
        if target != name:
            # alias targets are written fully qualified
            return self.qualify(target)
        found = self.find(name, context)
        return found.display_name if found is not None else text

    def _qualify_tuple_element(self, element, context):
        m = re_tuple_element.match(element)
        if m:
            return f'{self.qualify(m.group(1), context)} {m.group(2)}'
        return self.qualify(element, context)

    def find(self, name, context=None):
        """Look a type name up the way C# name lookup would see it from ``context``."""
        for candidate in _lookup_candidates(name, context):
            symbol = self.lookup_type(candidate)
            if symbol is not None:
                return symbol
        return None


def _expand_alias(name, context):
    if context is None:
        return name
    head, dot, rest = name.partition('.')
    target = context.aliases.get(head)
    return name if target is None else target + dot + rest


def _lookup_candidates(name, context):
    scope = context
    while scope is not None:
        yield f"{scope.metadata_name}+{name.replace('.', '+')}"
        scope = scope.containing_type
    if context is None:
        yield name
        return
    parts = context.namespace.split('.') if context.namespace else []
    while parts:
        yield '.'.join(parts + [name])
        parts.pop()
    for imported in context.imports:
        yield f'{imported}.{name}'
    yield name


def _declare_json_type(entry, table, namespace, containing):
    if not isinstance(entry, dict) or not entry.get('name'):
        raise SymbolFileError(f'type entry without a name: {entry!r}')
    declared = TypeSymbol(entry['name'], namespace, containing, entry.get('imports', ()))
    symbol = table.add(declared)
    if containing is not None and symbol is declared:
        containing.add_member(MemberSymbol(MemberKind.TYPE, symbol.name))
    for member in entry.get('members', ()):
        symbol.add_member(_json_member(member))
    for nested in entry.get('types', ()):
        _declare_json_type(nested, table, namespace, symbol)
    return symbol


def _json_member(member):
    if not isinstance(member, dict) or not member.get('name'):
        raise SymbolFileError(f'member entry without a name: {member!r}')
    kind_name = member.get('kind', 'method')
    try:
        kind = MemberKind(kind_name)
    except ValueError:
        raise SymbolFileError(f"unknown member kind '{kind_name}' for {member['name']}") from None
    if kind is not MemberKind.METHOD:
        return MemberSymbol(kind, member['name'])
    returns = member.get('returns', 'void')
    return MethodSymbol(
        member['name'],
        is_static=bool(member.get('static', False)),
        parameters=member.get('parameters', ()),
        return_type=None if returns in (None, 'void') else returns,
    )


def load_symbol_file(path, table):
    """Load a JSON symbol file into ``table`` and return the number of top-level types.

    Expected shape::

        {"types": [{"namespace": "Game", "name": "Player",
                    "members": [{"kind": "method", "name": "Update",
                                 "static": false, "parameters": ["float"],
                                 "returns": "void"}],
                    "types": [...nested types...]}]}
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as err:
        raise SymbolFileError(f'cannot read symbol file {path}: {err}') from err
    if not isinstance(data, dict) or not isinstance(data.get('types'), list):
        raise SymbolFileError(f"symbol file {path} has no 'types' list")
    for entry in data['types']:
        namespace = entry.get('namespace', '') if isinstance(entry, dict) else ''
        _declare_json_type(entry, table, namespace, None)
    logger.debug('loaded %d types from %s', len(data['types']), path)
    return len(data['types'])
