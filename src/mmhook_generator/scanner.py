"""
Reference scanner: finds ``On.X.Y += ...`` / ``IL.X.Y -= ...`` hook references.
"""
from typing import NamedTuple, Tuple

from mmhook_generator.csharp import iter_nodes, node_text
from mmhook_generator.model import HookKind, HookReference, parse_reference

COMPOUND_OPERATORS = ('+=', '-=')
MEMBER_ACCESS_NODES = ('member_access_expression', 'qualified_name')


class ScanResult(NamedTuple):
    on: Tuple[HookReference, ...] = ()
    il: Tuple[HookReference, ...] = ()

    def references(self, kind):
        if kind is HookKind.ON:
            return self.on
        if kind is HookKind.IL:
            return self.il
        return ()

    def __len__(self):
        return len(self.on) + len(self.il)


def _operator(node):
    op = node.child_by_field_name('operator')
    if op is not None:
        return node_text(op).strip()
    for child in node.children:
        if node_text(child) in COMPOUND_OPERATORS:
            return node_text(child)
    return ''


def hook_target(node):
    """Return the left operand of a ``+=``/``-=`` member access assignment, or None."""
    if node.type != 'assignment_expression':
        return None
    if _operator(node) not in COMPOUND_OPERATORS:
        return None
    left = node.child_by_field_name('left')
    if left is None or left.type not in MEMBER_ACCESS_NODES:
        return None
    return left


def scan(trees):
    """Collect hook references from ``trees``.

    ``trees`` is an iterable of ``(label, root_node)`` pairs; the label
    (usually the file path) is recorded in each reference's location.
    References are deduplicated per kind on their trimmed text, keeping the
    first occurrence.
    """
    found = {kind: {} for kind in HookKind}
    for label, root in trees:
        for node in iter_nodes(root):
            left = hook_target(node)
            if left is None:
                continue
            location = f'{label}:{left.start_point[0] + 1}' if label else ''
            ref = parse_reference(node_text(left), location)
            if ref is None:
                continue
            found[ref.kind].setdefault(ref.text, ref)
    return ScanResult(
        on=tuple(found[HookKind.ON].values()),
        il=tuple(found[HookKind.IL].values()),
    )


def scan_tree(root, label=''):
    return scan([(label, root)])
