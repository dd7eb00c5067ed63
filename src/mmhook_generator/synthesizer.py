"""
Source synthesizer: turns resolved hooks into C# source units.

One unit per (hook kind, declaring type). For ``Game.World.Player.Update``
hooked with ``On.`` the unit looks like::

    namespace On.Game
    {
        public static partial class World
        {
            public static partial class Player
            {
                public static event Action<Action<global::Game.World.Player>, global::Game.World.Player> Update
                {
                    add { HookEndpointManager.Add(typeof(...).GetMethod("Update", (BindingFlags)60), value); }
                    remove { ... }
                }
            }
        }
    }
"""
from mmhook_generator.model import GeneratedUnit, GenerationGroup, HookKind, UnsupportedHookKind

INDENT = '    '

# BindingFlags.Instance | Static | Public | NonPublic
BINDING_FLAGS_ALL = 60

BASE_USINGS = (
    'MonoMod.Cil',
    'MonoMod.RuntimeDetour.HookGen',
    'System',
    'System.Reflection',
)

# (subscribe, unsubscribe) entry points on HookEndpointManager
ENDPOINTS = {
    HookKind.ON: ('Add', 'Remove'),
    HookKind.IL: ('Modify', 'Unmodify'),
}


def group_hooks(hooks):
    groups = {}
    for hook in hooks:
        key = (hook.kind, hook.declaring_type.metadata_name)
        group = groups.get(key)
        if group is None:
            group = groups[key] = GenerationGroup(hook.kind, hook.declaring_type)
        group.add(hook)
    return list(groups.values())


def signature_types(hook):
    """Receiver (instance methods), parameters, then the return type if any."""
    types = []
    if not hook.method.is_static:
        types.append(hook.declaring_type.display_name)
    types.extend(hook.parameter_types)
    if not hook.returns_void:
        types.append(hook.return_type)
    return types


def delegate_type(hook):
    delegate = 'Action' if hook.returns_void else 'Func'
    types = signature_types(hook)
    if not types:
        return f'{delegate}<{delegate}>'
    joined = ', '.join(types)
    return f'{delegate}<{delegate}<{joined}>, {joined}>'


def callback_type(hook):
    if hook.kind is HookKind.ON:
        return delegate_type(hook)
    if hook.kind is HookKind.IL:
        return 'ILContext.Manipulator'
    raise UnsupportedHookKind(f"Hook kind '{hook.kind}' is not supported")


def namespace_name(kind, type_symbol):
    if type_symbol.namespace:
        return f'{kind.value}.{type_symbol.namespace}'
    return kind.value


def unit_name(kind, type_symbol):
    return f'{namespace_name(kind, type_symbol)}.{type_symbol.nested_name}'


def hook_member_lines(hook):
    """Lines of the ``public static event`` declaration for one hook, unindented."""
    if hook.kind not in ENDPOINTS:
        raise UnsupportedHookKind(f"Hook kind '{hook.kind}' is not supported")
    subscribe, unsubscribe = ENDPOINTS[hook.kind]
    name = hook.method.name
    lookup = (f'typeof({hook.declaring_type.display_name})'
              f'.GetMethod("{name}", (BindingFlags){BINDING_FLAGS_ALL})')
    lines = [f'public static event {callback_type(hook)} {name}', '{']
    for accessor, endpoint in (('add', subscribe), ('remove', unsubscribe)):
        lines.extend([
            f'{INDENT}{accessor}',
            f'{INDENT}{{',
            f'{INDENT * 2}HookEndpointManager.{endpoint}({lookup}, value);',
            f'{INDENT}}}',
        ])
    lines.append('}')
    return lines


def synthesize(group):
    if group.kind not in ENDPOINTS:
        raise UnsupportedHookKind(f"Hook kind '{group.kind}' is not supported")
    type_symbol = group.declaring_type
    lines = []
    usings = list(BASE_USINGS)
    for imported in type_symbol.imports:
        if imported not in usings:
            usings.append(imported)
    for namespace in usings:
        lines.append(f'using {namespace};')
    lines.append('')
    lines.append(f'namespace {namespace_name(group.kind, type_symbol)}')
    lines.append('{')

    chain = type_symbol.containing_chain()
    depth = 1
    for level in chain:
        lines.append(f'{INDENT * depth}public static partial class {level.name}')
        lines.append(f'{INDENT * depth}{{')
        depth += 1

    for i, hook in enumerate(group.hooks):
        if i:
            lines.append('')
        for line in hook_member_lines(hook):
            lines.append(INDENT * depth + line)

    for _ in chain:
        depth -= 1
        lines.append(f'{INDENT * depth}}}')
    lines.append('}')
    return GeneratedUnit(unit_name(group.kind, type_symbol), '\n'.join(lines) + '\n')


def synthesize_all(hooks):
    return [synthesize(group) for group in group_hooks(hooks)]
