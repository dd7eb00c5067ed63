"""
Data structures shared by the scanner, resolver and synthesizer.
"""
import re
from enum import Enum
from typing import NamedTuple, Optional, Tuple


class UnsupportedHookKind(ValueError):
    """Raised when synthesis is asked for a hook kind it cannot emit."""


class HookKind(Enum):
    ON = 'On'
    IL = 'IL'

    @property
    def prefix(self) -> str:
        return self.value + '.'


# IL units are produced before On units
GENERATION_ORDER = (HookKind.IL, HookKind.ON)

_DOT_SPACING = re.compile(r'\s*\.\s*')


class HookReference(NamedTuple):
    kind: HookKind
    type_name: str
    member_name: str
    text: str
    location: str = ''


def parse_reference(text, location=''):
    """Classify a member access text as a hook reference.

    Returns None when the text carries neither the ``On.`` nor the ``IL.``
    prefix. ``On.Game.Player.Update`` yields type name ``Game.Player`` and
    member name ``Update``.
    """
    text = text.strip()
    for kind in HookKind:
        if text.startswith(kind.prefix):
            break
    else:
        return None
    qualifier, _, member = text[len(kind.prefix):].rpartition('.')
    type_name = _DOT_SPACING.sub('.', qualifier).strip()
    return HookReference(kind, type_name, member.strip(), text, location)


class MemberKind(Enum):
    METHOD = 'method'
    FIELD = 'field'
    PROPERTY = 'property'
    EVENT = 'event'
    TYPE = 'type'


class MemberSymbol:
    def __init__(self, kind, name):
        self.kind = kind
        self.name = name

    def __repr__(self):
        return f'<{self.kind.value} {self.name}>'


class MethodSymbol(MemberSymbol):
    def __init__(self, name, is_static=False, parameters=(), return_type=None):
        super().__init__(MemberKind.METHOD, name)
        self.is_static = is_static
        self.parameters = tuple(parameters)
        # None means the method returns void
        self.return_type = return_type

    @property
    def returns_void(self) -> bool:
        return self.return_type is None

    def __repr__(self):
        params = ', '.join(self.parameters)
        ret = self.return_type or 'void'
        static = 'static ' if self.is_static else ''
        return f'<method {static}{ret} {self.name}({params})>'


class TypeSymbol:
    """A named type known to the type table.

    ``name`` is the metadata name, so generic types carry their arity
    (``Cache`1``). ``imports`` lists the namespaces brought in by ``using``
    directives where the type was declared, ``aliases`` maps the names of
    ``using Alias = Target;`` directives to their target text.
    """

    def __init__(self, name, namespace='', containing_type=None, imports=(), aliases=None):
        self.name = name
        self.namespace = namespace or ''
        self.containing_type = containing_type
        self.members = []
        self.imports = list(imports)
        self.aliases = dict(aliases or {})

    @property
    def nested_name(self) -> str:
        return '.'.join(t.name for t in self.containing_chain())

    @property
    def full_name(self) -> str:
        if self.namespace:
            return f'{self.namespace}.{self.nested_name}'
        return self.nested_name

    @property
    def metadata_name(self) -> str:
        """Full name with nested types joined by ``+`` (``Game.Player+Stats``)."""
        nested = '+'.join(t.name for t in self.containing_chain())
        if self.namespace:
            return f'{self.namespace}.{nested}'
        return nested

    @property
    def display_name(self) -> str:
        return 'global::' + re.sub(r'`\d+', '', self.full_name)

    def containing_chain(self):
        """Return the nesting chain, outermost type first and self last."""
        chain = []
        current = self
        while current is not None:
            chain.append(current)
            current = current.containing_type
        chain.reverse()
        return chain

    def add_member(self, member):
        self.members.append(member)
        return member

    def methods(self):
        return [m for m in self.members if m.kind is MemberKind.METHOD]

    def __repr__(self):
        return f'<type {self.full_name}>'


class ResolvedHook(NamedTuple):
    kind: HookKind
    declaring_type: TypeSymbol
    method: MethodSymbol
    parameter_types: Tuple[str, ...]
    return_type: Optional[str]

    @property
    def returns_void(self) -> bool:
        return self.return_type is None


class GenerationGroup:
    def __init__(self, kind, declaring_type):
        self.kind = kind
        self.declaring_type = declaring_type
        self.hooks = []

    @property
    def key(self):
        return (self.kind, self.declaring_type.metadata_name)

    def add(self, hook) -> bool:
        """Add a hook unless its method is already part of the group."""
        if any(h.method is hook.method for h in self.hooks):
            return False
        self.hooks.append(hook)
        return True


class GeneratedUnit(NamedTuple):
    name: str
    text: str

    @property
    def file_name(self) -> str:
        return self.name + '.cs'
