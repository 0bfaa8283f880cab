#
#  otoolkit | otoolkit
#  cli.py
#
#  `otoolkit` command line front end: a small otool built on the decoder.
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

import argparse
import json
import sys

from lib0tk.log import log, LogLevel
from otoolkit.base import serialize_value
from otoolkit.exceptions import MachOException
from otoolkit.loader import parse_file
from otoolkit.magic import ObjectKind
from otoolkit.util import opts, Table, highlight_json, otk_print, print_err, OUT_IS_TTY, OTOOLKIT_VERSION

VERBOSITY = [LogLevel.ERROR, LogLevel.WARN, LogLevel.INFO, LogLevel.DEBUG, LogLevel.DEBUG_MORE,
             LogLevel.DEBUG_TOO_MUCH]


def _select_objects(obj, arch_index):
    """
    Resolve the images to work on: every slice of a fat file (or just `arch_index`), or the one thin image.

    :return: list of (label, MachObject)
    """
    if obj.kind == ObjectKind.MACHO:
        if arch_index not in (None, 0):
            raise MachOException(f'Not a fat file; there is no arch {arch_index}')
        return [(obj.header.cpu_name, obj)]

    selected = []
    for index, arch in enumerate(obj.arch_iterator()):
        if arch_index is not None and index != arch_index:
            continue
        try:
            selected.append((f'{arch.cpu_name} (arch {index})', arch.object()))
        except MachOException as ex:
            log.error(f'arch {index} ({arch.cpu_name}) could not be loaded: {ex}')
    if arch_index is not None and not selected:
        raise MachOException(f'No loadable arch {arch_index}; the file has {obj.nfat_arch}')
    return selected


def _emit(args, label, table: Table, data):
    if args.json:
        return data
    if label:
        otk_print(f'{label}:')
    otk_print(table.render())
    return None


def _dump_json(results):
    text = json.dumps(results, indent=2)
    if sys.stdout.isatty() and not opts.DISABLE_COLOR:
        text = highlight_json(text)
    print(text)


def cmd_header(args, obj):
    results = []
    if obj.kind == ObjectKind.FAT:
        table = Table()
        table.titles = ['arch', 'name', 'cputype', 'cpusubtype', 'caps', 'offset', 'size', 'align']
        for index, arch in enumerate(obj.arch_iterator()):
            table.rows.append([str(index), arch.cpu_name, str(arch.cputype), str(arch.masked_cpusubtype),
                               hex(arch.feature_flags), str(arch.offset), str(arch.size),
                               f'2^{arch.align} ({2 ** arch.align})'])
        fat = _emit(args, 'Fat headers', table, obj.serialize())
        if fat is not None:
            results.append({'fat': fat})

    for label, image in _select_objects(obj, args.arch):
        header = image.header
        table = Table()
        table.titles = ['magic', 'cputype', 'cpusubtype', 'caps', 'filetype', 'ncmds', 'sizeofcmds', 'flags']
        table.rows.append([hex(header.magic.raw_value), str(header.cputype), str(header.masked_cpusubtype),
                           hex(header.feature_flags), header.filetype_name, str(header.ncmds),
                           str(header.sizeofcmds), '\n'.join(header.flag_names())])
        data = _emit(args, f'{label} Mach header', table, header.serialize())
        if data is not None:
            results.append({'arch': label, 'header': data})
    return results


def cmd_lc(args, obj):
    results = []
    for label, image in _select_objects(obj, args.arch):
        table = Table()
        table.titles = ['#', 'cmd', 'cmdsize', 'offset', 'fields']
        commands = []
        for index, load_command in enumerate(image.load_commands_iterator()):
            variant = load_command.variant
            fields = '\n'.join(f'{field}: {getattr(variant, field)}' for field in variant.fields)
            table.rows.append([str(index), load_command.name, str(load_command.cmdsize),
                               hex(load_command.offset), fields])
            if args.json:
                commands.append(load_command.serialize())
        data = _emit(args, f'{label} Load commands', table, commands)
        if data is not None:
            results.append({'arch': label, 'load_commands': data})
    return results


def cmd_dylibs(args, obj):
    results = []
    for label, image in _select_objects(obj, args.arch):
        table = Table()
        table.titles = ['cmd', 'name', 'current', 'compatibility']
        dylibs = []
        for load_command in image.dylibs():
            dylib = load_command.variant
            table.rows.append([load_command.name, str(dylib.name), str(dylib.current_version),
                               str(dylib.compatibility_version)])
            dylibs.append(load_command.serialize())
        data = _emit(args, f'{label} Dylibs', table, dylibs)
        if data is not None:
            results.append({'arch': label, 'dylibs': data})
    return results


def cmd_rpaths(args, obj):
    results = []
    for label, image in _select_objects(obj, args.arch):
        table = Table()
        table.titles = ['path']
        paths = []
        for rpath in image.rpaths():
            table.rows.append([str(rpath.path)])
            paths.append(rpath.path.serialize())
        data = _emit(args, f'{label} Rpaths', table, paths)
        if data is not None:
            results.append({'arch': label, 'rpaths': data})
    return results


def cmd_segs(args, obj):
    results = []
    for label, image in _select_objects(obj, args.arch):
        table = Table()
        table.titles = ['segment', 'section', 'vmaddr/addr', 'vmsize/size', 'fileoff/offset', 'prot', 'flags']
        segments = []
        for segment in image.segments():
            table.rows.append([segment.segname, '', str(segment.vmaddr), str(segment.vmsize), str(segment.fileoff),
                               f'{segment.initprot}/{segment.maxprot}', str(segment.flags)])
            for sect in segment.sections_iterator():
                table.rows.append(['', sect.sectname, str(sect.addr), hex(sect.size), str(sect.offset),
                                   '', str(serialize_value(sect.section_type))])
            if args.json:
                segments.append(segment.serialize())
        data = _emit(args, f'{label} Segments', table, segments)
        if data is not None:
            results.append({'arch': label, 'segments': data})
    return results


def cmd_syms(args, obj):
    results = []
    for label, image in _select_objects(obj, args.arch):
        table = Table()
        table.titles = ['#', 'name', 'type', 'ext', 'sect', 'desc', 'value']
        symbols = []
        symtab = image.symtab()
        if symtab is not None:
            for index, sym in enumerate(symtab.nlist_iterator()):
                data = sym.serialize()
                name = data['name'] if data['name'] is not None else ''
                if data.get('indirect'):
                    name += f' (indirect for {data["indirect"]})'
                table.rows.append([str(index), name, data['type'], 'x' if data['external'] else '',
                                   str(sym.n_sect), hex(sym.n_desc), str(data['n_value'])])
                symbols.append(data)
        data = _emit(args, f'{label} Symbols', table, symbols)
        if data is not None:
            results.append({'arch': label, 'symbols': data})
    return results


def cmd_rel(args, obj):
    results = []
    for label, image in _select_objects(obj, args.arch):
        sections = []
        for segment in image.segments():
            for sect in segment.sections_iterator():
                if sect.nreloc == 0:
                    continue
                table = Table()
                table.titles = ['address', 'pcrel', 'length', 'extern', 'type', 'scattered', 'symbolnum']
                relocations = []
                for reloc in sect.relocations_iterator():
                    table.rows.append([hex(reloc.r_address & 0xffffffff), str(reloc.r_pcrel), reloc.length_name,
                                       str(reloc.r_extern), reloc.type_name(image.header.cputype),
                                       'yes' if reloc.is_scattered() else 'no', str(reloc.r_symbolnum)])
                    relocations.append(reloc.serialize())
                data = _emit(args, f'{label} Relocations ({sect.segname},{sect.sectname}) {sect.nreloc} entries',
                             table, relocations)
                if data is not None:
                    sections.append({'segname': sect.segname, 'sectname': sect.sectname, 'relocations': data})
        if args.json:
            results.append({'arch': label, 'sections': sections})
    return results


def cmd_sect(args, obj):
    for label, image in _select_objects(obj, args.arch):
        for segment in image.segments():
            for sect in segment.sections_iterator():
                if sect.segname == args.segname and sect.sectname == args.sectname:
                    sink = sys.stdout.buffer
                    sect.read_data_to(sink)
                    sink.flush()
                    return None
    raise MachOException(f'No section {args.segname},{args.sectname}')


def build_parser():
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('path', help='Mach-O or universal binary')
    common.add_argument('--arch', type=int, default=None, metavar='INDEX',
                        help='Only look at the fat arch with this index')
    common.add_argument('--json', action='store_true', help='JSON output')
    common.add_argument('--no-color', action='store_true', help='Disable colored output')
    common.add_argument('--strict', action='store_true',
                        help='Fail instead of stopping early when part of a table cannot be decoded')
    common.add_argument('-v', '--verbose', action='count', default=0, help='More logging; repeat for more')

    parser = argparse.ArgumentParser(prog='otoolkit', description='Inspect Mach-O and universal binaries.')
    parser.add_argument('--version', action='version', version=f'otoolkit {OTOOLKIT_VERSION}')
    subparsers = parser.add_subparsers(dest='command', required=True)

    for name, func, help_text in [
        ('header', cmd_header, 'Fat and Mach headers'),
        ('lc', cmd_lc, 'Load commands'),
        ('dylibs', cmd_dylibs, 'Linked (and identifying) dylibs'),
        ('rpaths', cmd_rpaths, 'LC_RPATH entries'),
        ('segs', cmd_segs, 'Segments and sections'),
        ('syms', cmd_syms, 'Symbol table'),
        ('rel', cmd_rel, 'Relocation entries of each section'),
    ]:
        sub = subparsers.add_parser(name, parents=[common], help=help_text)
        sub.set_defaults(func=func)

    sect = subparsers.add_parser('sect', parents=[common], help="Write a section's raw bytes to stdout")
    sect.add_argument('segname')
    sect.add_argument('sectname')
    sect.set_defaults(func=cmd_sect)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    opts.DISABLE_COLOR = args.no_color or not OUT_IS_TTY
    opts.STRICT_SEQUENCES = args.strict
    log.LOG_LEVEL = VERBOSITY[min(args.verbose, len(VERBOSITY) - 1)]

    try:
        obj = parse_file(args.path)
    except MachOException as ex:
        print_err(f'could not parse {args.path}: {ex}')
        return 1

    try:
        results = args.func(args, obj)
    except MachOException as ex:
        print_err(f'{args.command}: {ex}')
        return 1
    finally:
        obj.reader.close()

    if args.json and results is not None:
        _dump_json(results)
    return 0


if __name__ == '__main__':
    sys.exit(main())
