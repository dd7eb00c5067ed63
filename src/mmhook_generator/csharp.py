"""
C# syntax trees via tree-sitter.

Provides parsing, node text and traversal helpers for the scanner, and
``declare_types`` which folds the type declarations of a tree into a
``TypeTable``.
"""
import re

import tree_sitter
import tree_sitter_c_sharp

from mmhook_generator.model import MemberKind, MemberSymbol, MethodSymbol, TypeSymbol

CSHARP = tree_sitter.Language(tree_sitter_c_sharp.language())

TYPE_DECLARATIONS = frozenset({
    'class_declaration',
    'struct_declaration',
    'interface_declaration',
    'record_declaration',
    'record_struct_declaration',
    'enum_declaration',
})

# tree-sitter wraps code inside #if/#region blocks under these node types
PREPROC_WRAPPERS = frozenset({
    'preproc_if',
    'preproc_ifdef',
    'preproc_elif',
    'preproc_else',
    'preproc_region',
})

# metadata names of user-defined operators
UNARY_OPERATORS = {
    '+': 'op_UnaryPlus',
    '-': 'op_UnaryNegation',
    '!': 'op_LogicalNot',
    '~': 'op_OnesComplement',
    '++': 'op_Increment',
    '--': 'op_Decrement',
    'true': 'op_True',
    'false': 'op_False',
}

BINARY_OPERATORS = {
    '+': 'op_Addition',
    '-': 'op_Subtraction',
    '*': 'op_Multiply',
    '/': 'op_Division',
    '%': 'op_Modulus',
    '&': 'op_BitwiseAnd',
    '|': 'op_BitwiseOr',
    '^': 'op_ExclusiveOr',
    '<<': 'op_LeftShift',
    '>>': 'op_RightShift',
    '>>>': 'op_UnsignedRightShift',
    '==': 'op_Equality',
    '!=': 'op_Inequality',
    '<': 'op_LessThan',
    '>': 'op_GreaterThan',
    '<=': 'op_LessThanOrEqual',
    '>=': 'op_GreaterThanOrEqual',
}

re_whitespace = re.compile(r'\s+')


def parse_source(source):
    """Parse C# source (bytes or str) and return the tree-sitter tree."""
    if isinstance(source, str):
        source = source.encode('utf-8')
    parser = tree_sitter.Parser()
    parser.language = CSHARP
    return parser.parse(source)


def node_text(node) -> str:
    if node is None or node.text is None:
        return ''
    return node.text.decode('utf-8', errors='replace')


def compact_text(node) -> str:
    """Node text with all whitespace removed (qualified names, type names)."""
    return re_whitespace.sub('', node_text(node))


def iter_nodes(root):
    """Yield every node below ``root`` (inclusive) in document order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _has_modifier(node, modifier):
    return any(c.type == 'modifier' and node_text(c) == modifier for c in node.children)


def _name_of(node):
    name = node.child_by_field_name('name')
    if name is None:
        name = next((c for c in node.named_children if c.type == 'identifier'), None)
    return compact_text(name)


def _type_arity(node):
    for child in node.children:
        if child.type == 'type_parameter_list':
            return sum(1 for c in child.named_children if c.type == 'type_parameter')
    return 0


def _using_namespaces(node):
    """Namespaces imported by plain ``using X.Y;`` directives directly under ``node``."""
    imports = []
    for child in node.children:
        if child.type != 'using_directive':
            continue
        if any(c.type in ('static', '=', 'name_equals') for c in child.children):
            continue
        target = next((c for c in child.named_children
                       if c.type in ('qualified_name', 'identifier')), None)
        if target is not None:
            imports.append(compact_text(target))
    return imports


def _using_aliases(node):
    """``{alias: target}`` for ``using Alias = Target;`` directives directly under ``node``."""
    aliases = {}
    for child in node.children:
        if child.type != 'using_directive' or not child.named_children:
            continue
        name_equals = next((c for c in child.children if c.type == 'name_equals'), None)
        if name_equals is not None:
            alias = next((c for c in name_equals.named_children if c.type == 'identifier'), None)
        elif any(c.type == '=' for c in child.children):
            alias = child.child_by_field_name('name') or child.named_children[0]
        else:
            continue
        target = child.named_children[-1]
        if alias is not None and target != alias and target != name_equals:
            aliases[compact_text(alias)] = compact_text(target)
    return aliases


def declare_types(root, table):
    """Declare every type found in the tree rooted at ``root`` into ``table``."""
    _declare_in_scope(root, table, '', _using_namespaces(root), _using_aliases(root))


def _declare_in_scope(node, table, namespace, imports, aliases):
    for child in node.children:
        if child.type == 'namespace_declaration':
            inner = _join(namespace, compact_text(child.child_by_field_name('name')))
            body = child.child_by_field_name('body')
            if body is not None:
                _declare_in_scope(body, table, inner, imports + _using_namespaces(body),
                                  {**aliases, **_using_aliases(body)})
        elif child.type == 'file_scoped_namespace_declaration':
            # following siblings belong to this namespace
            namespace = _join(namespace, compact_text(child.child_by_field_name('name')))
            imports = imports + _using_namespaces(child)
            aliases = {**aliases, **_using_aliases(child)}
            _declare_in_scope(child, table, namespace, imports, aliases)
        elif child.type in TYPE_DECLARATIONS:
            _declare_type(child, table, namespace, None, imports, aliases)
        elif child.type in PREPROC_WRAPPERS:
            _declare_in_scope(child, table, namespace, imports, aliases)


def _join(namespace, name):
    return f'{namespace}.{name}' if namespace and name else namespace or name


def _declare_type(node, table, namespace, containing, imports, aliases):
    name = _name_of(node)
    if not name:
        return None
    arity = _type_arity(node)
    if arity:
        name = f'{name}`{arity}'
    declared = TypeSymbol(name, namespace, containing, imports, aliases)
    symbol = table.add(declared)
    if containing is not None and symbol is declared:
        containing.add_member(MemberSymbol(MemberKind.TYPE, name))
    body = node.child_by_field_name('body')
    if body is not None and body.type == 'declaration_list':
        _declare_members(body, symbol, table, namespace, imports, aliases)
    return symbol


def _declare_members(body, symbol, table, namespace, imports, aliases):
    for child in body.children:
        kind = child.type
        if kind in TYPE_DECLARATIONS:
            _declare_type(child, table, namespace, symbol, imports, aliases)
        elif kind == 'method_declaration':
            symbol.add_member(_method(child))
        elif kind == 'constructor_declaration':
            is_static = _has_modifier(child, 'static')
            symbol.add_member(MethodSymbol('.cctor' if is_static else '.ctor', is_static,
                                           _parameter_types(child)))
        elif kind == 'property_declaration':
            _declare_property(child, symbol)
        elif kind == 'field_declaration':
            for name in _declarator_names(child):
                symbol.add_member(MemberSymbol(MemberKind.FIELD, name))
        elif kind == 'event_field_declaration':
            declaration = next((c for c in child.named_children
                                if c.type == 'variable_declaration'), None)
            etype = node_text(declaration.child_by_field_name('type')).strip() if declaration else ''
            for name in _declarator_names(child):
                _declare_event(symbol, name, etype, _has_modifier(child, 'static'))
        elif kind == 'event_declaration':
            _declare_event(symbol, _name_of(child), node_text(child.child_by_field_name('type')).strip(),
                           _has_modifier(child, 'static'))
        elif kind == 'indexer_declaration':
            _declare_indexer(child, symbol)
        elif kind == 'operator_declaration':
            name = _operator_method_name(child)
            if name:
                symbol.add_member(MethodSymbol(name, True, _parameter_types(child), _return_type(child)))
        elif kind == 'conversion_operator_declaration':
            explicit = any(c.type == 'explicit' for c in child.children)
            symbol.add_member(MethodSymbol('op_Explicit' if explicit else 'op_Implicit', True,
                                           _parameter_types(child), _return_type(child)))
        elif kind == 'destructor_declaration':
            symbol.add_member(MethodSymbol('Finalize'))
        elif kind == 'delegate_declaration':
            symbol.add_member(MemberSymbol(MemberKind.TYPE, _name_of(child)))
        elif kind in PREPROC_WRAPPERS:
            _declare_members(child, symbol, table, namespace, imports, aliases)


def _return_type(node):
    returns = node.child_by_field_name('returns') or node.child_by_field_name('type')
    text = compact_text(returns)
    return None if text in ('', 'void') else node_text(returns).strip()


def _method(node):
    return MethodSymbol(
        _name_of(node),
        is_static=_has_modifier(node, 'static'),
        parameters=_parameter_types(node),
        return_type=_return_type(node),
    )


def _parameter_types(node):
    params = node.child_by_field_name('parameters')
    if params is None:
        return ()
    types = []
    for param in params.named_children:
        if param.type not in ('parameter', 'parameter_array'):
            continue
        ptype = param.child_by_field_name('type')
        if ptype is None:
            name = param.child_by_field_name('name')
            ptype = next((c for c in param.named_children
                          if c.type not in ('attribute_list', 'modifier', 'parameter_modifier',
                                            'equals_value_clause')
                          and c != name), None)
        types.append(node_text(ptype).strip())
    return tuple(types)


def _accessor_kinds(node):
    accessors = node.child_by_field_name('accessors')
    if accessors is None:
        # expression-bodied: get only
        return ['get']
    kinds = []
    for accessor in accessors.named_children:
        if accessor.type != 'accessor_declaration':
            continue
        keyword = node_text(accessor.child_by_field_name('name'))
        if not keyword:
            keyword = next((node_text(c) for c in accessor.children
                            if node_text(c) in ('get', 'set', 'init')), '')
        kinds.append(keyword)
    return kinds


def _declare_accessors(symbol, name, ptype, is_static, kinds, parameters=()):
    for keyword in kinds:
        if keyword == 'get':
            symbol.add_member(MethodSymbol(f'get_{name}', is_static, parameters, ptype))
        elif keyword in ('set', 'init'):
            symbol.add_member(MethodSymbol(f'set_{name}', is_static, parameters + (ptype,)))


def _declare_property(node, symbol):
    name = _name_of(node)
    ptype = node_text(node.child_by_field_name('type')).strip()
    symbol.add_member(MemberSymbol(MemberKind.PROPERTY, name))
    _declare_accessors(symbol, name, ptype, _has_modifier(node, 'static'), _accessor_kinds(node))


def _declare_indexer(node, symbol):
    # indexers compile to the Item property unless [IndexerName] says otherwise
    ptype = node_text(node.child_by_field_name('type')).strip()
    symbol.add_member(MemberSymbol(MemberKind.PROPERTY, 'Item'))
    _declare_accessors(symbol, 'Item', ptype, False, _accessor_kinds(node), _parameter_types(node))


def _declare_event(symbol, name, etype, is_static):
    symbol.add_member(MemberSymbol(MemberKind.EVENT, name))
    symbol.add_member(MethodSymbol(f'add_{name}', is_static, (etype,)))
    symbol.add_member(MethodSymbol(f'remove_{name}', is_static, (etype,)))


def _operator_method_name(node):
    """Metadata name of a user-defined operator, e.g. ``op_Addition``."""
    token = node_text(node.child_by_field_name('operator'))
    if not token:
        children = node.children
        for i, child in enumerate(children):
            if child.type == 'operator':
                rest = [c for c in children[i + 1:] if c.type != 'checked']
                token = node_text(rest[0]) if rest else ''
                break
    names = UNARY_OPERATORS if len(_parameter_types(node)) == 1 else BINARY_OPERATORS
    return names.get(token)


def _declarator_names(node):
    names = []
    for declaration in node.named_children:
        if declaration.type != 'variable_declaration':
            continue
        for declarator in declaration.named_children:
            if declarator.type == 'variable_declarator':
                names.append(_name_of(declarator))
    return names
