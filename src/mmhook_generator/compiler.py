#!/usr/bin/env python3
"""
MMHook Generator
Scans C# sources for On./IL. hook references and writes typed hook events
"""
import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from mmhook_generator.csharp import declare_types, parse_source
from mmhook_generator.model import GENERATION_ORDER
from mmhook_generator.resolver import resolve
from mmhook_generator.scanner import scan
from mmhook_generator.symbols import SymbolFileError, TypeTable, load_symbol_file
from mmhook_generator.synthesizer import synthesize_all

logger = logging.getLogger(__name__)

# Configuration (patch-friendly for tests)
SOURCE_ROOT = Path('.')
OUTPUT_DIR = Path('Generated') / 'Hooks'
SOURCE_SUFFIX = '.cs'
EXCLUDED_DIRS = {'bin', 'obj'}
REPORT_NAME = 'hooks.report'

# Names of files this tool owns inside the output directory
GENERATED_PREFIXES = ('On.', 'IL.')


class Compilation:
    """Parsed sources plus the type table built from them."""

    def __init__(self, trees=None, table=None):
        self.trees = trees if trees is not None else []
        self.table = table if table is not None else TypeTable()

    def roots(self):
        return [(label, tree.root_node) for label, tree in self.trees]


class GenerationResult:
    def __init__(self, scanned, hooks, unresolved, units):
        self.scanned = scanned
        self.hooks = hooks
        self.unresolved = unresolved
        self.units = units


def read_source(path):
    try:
        return Path(path).read_bytes()
    except OSError as err:
        print(f'Warning: cannot read {path}: {err}', file=sys.stderr)
        return None


def collect_sources(root, output_dir=None):
    """Return the C# files under ``root`` in a stable order."""
    root = Path(root)
    skip = Path(output_dir).resolve() if output_dir is not None else None
    paths = []
    for p in sorted(root.rglob('*' + SOURCE_SUFFIX)):
        rel_parts = p.relative_to(root).parts[:-1]
        if any(part in EXCLUDED_DIRS or part.startswith('.') for part in rel_parts):
            continue
        if skip is not None and (p.resolve() == skip or skip in p.resolve().parents):
            continue
        if p.is_file():
            paths.append(p)
    return paths


def load_compilation(paths, symbol_files=()):
    compilation = Compilation()
    for p in paths:
        source = read_source(p)
        if source is None:
            continue
        tree = parse_source(source)
        logger.debug('parsed %s', p)
        declare_types(tree.root_node, compilation.table)
        compilation.trees.append((str(p), tree))
    for symbol_file in symbol_files:
        load_symbol_file(symbol_file, compilation.table)
    return compilation


def generate(compilation):
    """Run scanner, resolver and synthesizer over a compilation."""
    scanned = scan(compilation.roots())
    hooks = []
    unresolved = []
    for kind in GENERATION_ORDER:
        for reference in scanned.references(kind):
            hook = resolve(reference, compilation.table)
            if hook is None:
                unresolved.append(reference)
            else:
                hooks.append(hook)
    units = synthesize_all(hooks)
    return GenerationResult(scanned, hooks, unresolved, units)


def write_units(units, output_dir, prune=False):
    """Write units as ``<name>.cs``; returns the paths that changed."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    changed = []
    for unit in units:
        target = output_dir / unit.file_name
        if target.exists() and target.read_text(encoding='utf-8') == unit.text:
            continue
        target.write_text(unit.text, encoding='utf-8')
        changed.append(target)
    if prune:
        keep = {unit.file_name for unit in units}
        for stale in stale_files(output_dir, keep):
            stale.unlink()
            changed.append(stale)
    return changed


def stale_files(output_dir, keep):
    return [p for p in sorted(Path(output_dir).glob('*' + SOURCE_SUFFIX))
            if p.name.startswith(GENERATED_PREFIXES) and p.name not in keep]


def check_units(units, output_dir):
    """Return the names of units whose file is missing or out of date."""
    output_dir = Path(output_dir)
    outdated = []
    for unit in units:
        target = output_dir / unit.file_name
        if not target.exists() or target.read_text(encoding='utf-8') != unit.text:
            outdated.append(unit.name)
    return outdated


def write_report(result, output_dir, source_root=None):
    """Write a generation report (JSON + text) into the output directory."""
    output_dir = Path(output_dir)
    report = {
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'source_root': str(source_root) if source_root is not None else None,
        'output_dir': str(output_dir),
        'counts': {
            'on_references': len(result.scanned.on),
            'il_references': len(result.scanned.il),
            'resolved': len(result.hooks),
            'units': len(result.units),
        },
        'units': [unit.file_name for unit in result.units],
        'unresolved': [
            {'kind': ref.kind.value, 'reference': ref.text, 'location': ref.location}
            for ref in result.unresolved
        ],
    }
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / f'{REPORT_NAME}.json'
    json_path.write_text(json.dumps(report, indent=2), encoding='utf-8')
    txt_lines = [
        f"Report generated: {report['timestamp']}",
        f"Source root: {report['source_root']}",
        f"Output: {report['output_dir']}",
    ]
    for k, v in report['counts'].items():
        txt_lines.append(f'{k}: {v}')
    if report['unresolved']:
        txt_lines.append('')
        txt_lines.append('Unresolved references (no hook generated):')
        for item in report['unresolved']:
            where = f" ({item['location']})" if item['location'] else ''
            txt_lines.append(f"- {item['reference']}{where}")
    (output_dir / f'{REPORT_NAME}.txt').write_text('\n'.join(txt_lines) + '\n', encoding='utf-8')
    return json_path


def build_arg_parser():
    parser = argparse.ArgumentParser(
        prog='mmhook-generator',
        description='Generate typed On./IL. hook events for the hooks a C# project uses.',
    )
    parser.add_argument('source_root', nargs='?', type=Path, default=None,
                        help='root of the C# sources to scan (default: current directory)')
    parser.add_argument('-o', '--output', type=Path, default=None,
                        help='directory for generated files (default: <source_root>/Generated/Hooks)')
    parser.add_argument('-s', '--symbols', type=Path, action='append', default=[],
                        help='JSON symbol file describing referenced assemblies (repeatable)')
    parser.add_argument('--check', action='store_true',
                        help='do not write; exit 1 if generated files are missing or stale')
    parser.add_argument('--prune', action='store_true',
                        help='delete On.*.cs / IL.*.cs files that are no longer generated')
    parser.add_argument('--no-report', action='store_true', help='skip writing the report')
    parser.add_argument('-v', '--verbose', action='store_true', help='log skipped references')
    return parser


def main(argv=None):
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    source_root = args.source_root if args.source_root is not None else SOURCE_ROOT
    output_dir = args.output if args.output is not None else source_root / OUTPUT_DIR
    if not source_root.is_dir():
        print(f'Error: {source_root} not found', file=sys.stderr)
        return 2

    print('=' * 80)
    print('MMHook Generator')
    print('=' * 80)

    paths = collect_sources(source_root, output_dir)
    print(f'Parsing {len(paths)} source files...')
    try:
        compilation = load_compilation(paths, args.symbols)
    except SymbolFileError as err:
        print(f'Error: {err}', file=sys.stderr)
        return 2
    print(f'Type table: {len(compilation.table)} types')

    print('Generating hooks...')
    result = generate(compilation)

    if args.check:
        outdated = check_units(result.units, output_dir)
        if args.prune:
            outdated.extend(p.stem for p in stale_files(output_dir, {u.file_name for u in result.units}))
        if outdated:
            print(f'\n {len(outdated)} generated files are out of date:')
            for name in outdated:
                print(f'  {name}')
            return 1
        print('\n Generated files are up to date.')
        return 0

    changed = write_units(result.units, output_dir, prune=args.prune)
    if not args.no_report:
        write_report(result, output_dir, source_root)

    print('\n Generation Complete!')
    print('-' * 40)
    print(f'  On hooks:    {len(result.scanned.on)}')
    print(f'  IL hooks:    {len(result.scanned.il)}')
    print(f'  Resolved:    {len(result.hooks)}')
    print(f'  Unresolved:  {len(result.unresolved)}')
    print(f'  Units:       {len(result.units)}')
    print(f'  Changed:     {len(changed)}')
    print(f'\n Output:   {output_dir}')
    return 0


if __name__ == '__main__':
    sys.exit(main())
