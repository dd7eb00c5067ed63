"""
Symbol resolver: maps hook references onto methods in the type table.

A reference that names an unknown type or a type without a method of that
name is skipped. Skips are expected (speculative references, partial
sources) and never abort a run.
"""
import logging

from mmhook_generator.model import MemberKind, ResolvedHook

logger = logging.getLogger(__name__)


def find_method(type_symbol, name):
    """Return the first method member of ``type_symbol`` called ``name``.

    Overloads are not told apart: the first declared one wins.
    """
    for member in type_symbol.members:
        if member.kind is MemberKind.METHOD and member.name == name:
            return member
    return None


def resolve(reference, table):
    type_symbol = table.lookup_type(reference.type_name)
    if type_symbol is None:
        logger.debug('skipping %s: type %r not found %s',
                     reference.text, reference.type_name, reference.location)
        return None
    method = find_method(type_symbol, reference.member_name)
    if method is None:
        logger.debug('skipping %s: no method %r on %s %s',
                     reference.text, reference.member_name, type_symbol.full_name,
                     reference.location)
        return None
    return ResolvedHook(
        kind=reference.kind,
        declaring_type=type_symbol,
        method=method,
        parameter_types=tuple(table.qualify(p, type_symbol) for p in method.parameters),
        return_type=None if method.returns_void else table.qualify(method.return_type, type_symbol),
    )

