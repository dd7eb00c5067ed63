#!/usr/bin/env python3
"""Tests for the hook reference scanner"""

from mmhook_generator.csharp import parse_source
from mmhook_generator.model import HookKind
from mmhook_generator.scanner import ScanResult, scan, scan_tree


def body(*statements):
    lines = '\n'.join('        ' + s for s in statements)
    return f'class Mod\n{{\n    void Load()\n    {{\n{lines}\n    }}\n}}\n'


def scan_source(source, label=''):
    return scan_tree(parse_source(source).root_node, label)


class TestScanner:

    def test_collects_both_kinds(self, sample_mod_cs):
        result = scan_source(sample_mod_cs)
        assert [r.text for r in result.on] == [
            'On.Game.Player.Bar',
            'On.Game.Player.Update',
            'On.Game.Player.Stats.Modifier.Apply',
            'On.Game.Missing.Thing',
        ]
        assert [r.text for r in result.il] == ['IL.Game.Player.Update']
        assert len(result) == 5

    def test_identical_references_kept_once(self):
        result = scan_source(body(
            'On.Game.Player.Update += A;',
            'On.Game.Player.Update += B;',
            'On.Game.Player.Update -= A;',
        ))
        assert len(result.on) == 1
        assert result.il == ()

    def test_kinds_are_isolated(self):
        result = scan_source(body(
            'On.Game.Player.Update += A;',
            'IL.Game.Player.Update += B;',
        ))
        assert all(r.kind is HookKind.ON for r in result.on)
        assert all(r.kind is HookKind.IL for r in result.il)
        assert result.references(HookKind.ON)[0].text == 'On.Game.Player.Update'
        assert result.references(HookKind.IL)[0].text == 'IL.Game.Player.Update'

    def test_unprefixed_and_non_compound_ignored(self):
        result = scan_source(body(
            'Events.Game.Player.Update += A;',
            'Online.Game.Player.Update += A;',
            'On.Game.Player.Update = null;',
            'On.Game.Player.Update *= 2;',
            'count += 1;',
            'this.handler += A;',
        ))
        assert result == ScanResult()
        assert len(result) == 0

    def test_textually_distinct_spellings_are_distinct(self):
        result = scan_source(body(
            'On.Game.Player.Update += A;',
            'On.Game . Player.Update += A;',
        ))
        assert len(result.on) == 2
        assert {r.type_name for r in result.on} == {'Game.Player'}

    def test_first_occurrence_order_and_location(self, sample_mod_cs):
        result = scan_source(sample_mod_cs, 'Mod.cs')
        assert result.on[0].location == 'Mod.cs:8'
        assert result.il[0].location == 'Mod.cs:11'

    def test_references_in_lambdas_and_nested_blocks(self):
        result = scan_source(body(
            'if (enabled) { On.Game.Player.Update += (orig, self) => orig(self); }',
            'Action load = () => { IL.Game.Player.Jump += il => { }; };',
        ))
        assert [r.text for r in result.on] == ['On.Game.Player.Update']
        assert [r.text for r in result.il] == ['IL.Game.Player.Jump']

    def test_dedup_spans_files(self):
        first = parse_source(body('On.Game.Player.Update += A;')).root_node
        second = parse_source(body('On.Game.Player.Update += B;', 'On.Game.Player.Draw += B;')).root_node
        result = scan([('A.cs', first), ('B.cs', second)])
        assert [(r.text, r.location) for r in result.on] == [
            ('On.Game.Player.Update', 'A.cs:5'),
            ('On.Game.Player.Draw', 'B.cs:6'),
        ]

    def test_scan_is_repeatable(self, sample_mod_cs):
        root = parse_source(sample_mod_cs).root_node
        assert scan_tree(root) == scan_tree(root)
