"""Typed On./IL. hook generation for C# sources."""

from mmhook_generator.model import (
    GeneratedUnit,
    HookKind,
    HookReference,
    ResolvedHook,
    UnsupportedHookKind,
    parse_reference,
)
from mmhook_generator.symbols import SymbolFileError, TypeTable

__version__ = '1.0.0'
