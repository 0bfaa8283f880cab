#
#  otoolkit | tests
#  test_unit.py
#
#  Decoder tests against the scratch images from scratch.py.
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

import json
import os
import sys
import unittest
from io import BytesIO

scriptdir = os.path.dirname(os.path.realpath(__file__))
sys.path.extend([f'{scriptdir}/../src', scriptdir])

from scratch import *

import otoolkit
from lib0tk.log import log, LogLevel, print_err
from otoolkit import parse, ObjectKind, Magic, SharedReader
from otoolkit.exceptions import BadMagicException, MalformedMachOException, BadBufferLengthException
from otoolkit.primitives import Hex, VmProt, Version32, Version64, LcStr, BitVec, Uuid
from otoolkit.reloc import RelocationInfo
from otoolkit.symtab import (StabType, SymbolKind, Ntype, STAB_OPTIONS, RAW_OPTIONS, NameOption, SectOption,
                             DescOption, ValueOption)
from otoolkit.load_commands import LcOther
from otoolkit.macho import cpu_name
from otoolkit.util import ignore, opts, Table

log.LOG_LEVEL = LogLevel.WARN

error_buffer = ""


def error_remap(msg):
    global error_buffer
    error_buffer += msg + '\n'


def enable_error_capture():
    log.LOG_ERR = error_remap
    global error_buffer
    error_buffer = ""


def assert_error_printed(msg):
    assert msg in error_buffer, error_buffer


def disable_error_capture():
    log.LOG_ERR = print_err


class MagicTestCase(unittest.TestCase):
    def test_raw_round_trip(self):
        for magic in Magic:
            self.assertIs(Magic.from_raw(magic.raw_value), magic)

    def test_byte_order(self):
        self.assertEqual(Magic.BIT64.byte_order, 'big')
        self.assertEqual(Magic.BIT64_REVERSE.byte_order, 'little')
        self.assertEqual(Magic.BIT32_REVERSE.byte_order, 'little')
        # the fat header is big endian either way
        self.assertEqual(Magic.FAT_REVERSE.byte_order, 'big')
        self.assertTrue(Magic.FAT_REVERSE.is_fat)
        self.assertFalse(Magic.BIT32.is_64)

    def test_bad_magic(self):
        with self.assertRaises(BadMagicException) as context:
            Magic.from_raw(0xdeadbeef)
        self.assertEqual(context.exception.value, 0xdeadbeef)

    def test_bad_magic_file(self):
        image = build_thin()
        image.put(0, (0xdeadbeef).to_bytes(4, 'big'))
        with self.assertRaises(BadMagicException):
            parse(image.get())


class FatTestCase(unittest.TestCase):

    def setUp(self):
        self.fat = build_fat()

    def test_kind(self):
        obj = parse(self.fat.get())
        self.assertEqual(obj.kind, ObjectKind.FAT)
        self.assertEqual(obj.nfat_arch, 2)
        self.assertEqual(obj.arch_list_offset, 8)

    def test_arch_table(self):
        obj = parse(self.fat.get())
        archs = list(obj.arch_iterator())
        self.assertEqual(len(archs), 2)

        self.assertEqual(archs[0].cputype, 16777223)
        self.assertEqual(archs[0].masked_cpusubtype, 3)
        self.assertEqual(archs[0].feature_flags, 0)
        self.assertEqual((archs[0].offset, archs[0].size, archs[0].align), (16384, 70080, 14))

        self.assertEqual(archs[1].cputype, 16777228)
        self.assertEqual(archs[1].cpusubtype, 0x80000002)
        self.assertEqual(archs[1].masked_cpusubtype, 2)
        self.assertEqual(archs[1].feature_flags, 0x80)
        self.assertEqual((archs[1].offset, archs[1].size, archs[1].align), (98304, 53488, 14))

        self.assertEqual([arch.cpu_name for arch in archs], ['x86_64', 'arm64e'])

    def test_arch_iterator_restarts(self):
        obj = parse(self.fat.get())
        first = [arch.offset for arch in obj.arch_iterator()]
        second = [arch.offset for arch in obj.arch_iterator()]
        self.assertEqual(first, second)

    def test_slices_match_headers(self):
        obj = parse(self.fat.get())
        for arch in obj.arch_iterator():
            image = arch.object()
            self.assertEqual(image.kind, ObjectKind.MACHO)
            self.assertEqual(image.file_offset, arch.offset)
            self.assertEqual(image.header.cputype, arch.cputype)
            self.assertEqual(image.header.cpusubtype, arch.cpusubtype)
            self.assertEqual(image.header.magic, Magic.BIT64_REVERSE)

    def test_slice_symbol_names(self):
        obj = parse(self.fat.get())
        arm64e = obj.objects()[1]
        symbol = next(iter(arm64e.symtab().nlist_iterator()))
        self.assertEqual(symbol.name.file_offset, 98304 + STR_OFF + 1)
        self.assertEqual(symbol.name.load_string(), '_main')

    def test_slice_section_data(self):
        obj = parse(self.fat.get())
        for image in obj.objects():
            text = next(next(image.segments()).sections_iterator())
            self.assertEqual(text.read_data(), TEXT_DATA)

    def test_bad_slice_offset(self):
        self.fat.put(BYTES_PER_FAT_HEADER + BYTES_PER_FAT_ARCH + 8, (0x00100000).to_bytes(4, 'big'))
        obj = parse(self.fat.get())

        enable_error_capture()
        objects = obj.objects()
        disable_error_capture()

        self.assertEqual(len(objects), 1)
        self.assertEqual(len(list(obj.arch_iterator())), 2)
        assert_error_printed('could not be loaded')


class ThinImageTestCase(unittest.TestCase):

    def setUp(self):
        self.image = parse(build_thin().get())

    def test_header(self):
        header = self.image.header
        self.assertEqual(self.image.kind, ObjectKind.MACHO)
        self.assertEqual(self.image.file_offset, 0)
        self.assertEqual(header.magic, Magic.BIT64_REVERSE)
        self.assertEqual(header.cpu_name, 'x86_64')
        self.assertEqual(header.filetype_name, 'EXECUTE')
        self.assertEqual(header.ncmds, 7)
        self.assertEqual(header.sizeofcmds, THIN_SIZEOFCMDS)
        self.assertEqual(header.reserved, 0)
        self.assertEqual(header.flag_names(), ['NOUNDEFS', 'DYLDLINK', 'TWOLEVEL', 'PIE'])
        self.assertEqual(self.image.commands_offset, FIRST_COMMAND_OFF)
        self.assertTrue(self.image.context.is_64)
        self.assertEqual(self.image.context.byte_order, 'little')

    def test_load_commands(self):
        commands = list(self.image.load_commands_iterator())
        self.assertEqual([command.name for command in commands], THIN_COMMANDS)
        self.assertEqual([command.offset for command in commands], THIN_COMMAND_OFFS)
        self.assertEqual(sum(command.cmdsize for command in commands), self.image.header.sizeofcmds)

    def test_load_commands_restart(self):
        iterator = self.image.load_commands_iterator()
        self.assertEqual([command.name for command in iterator], [command.name for command in iterator])

    def test_dylib(self):
        dylibs = self.image.dylibs()
        self.assertEqual(len(dylibs), 1)
        self.assertEqual(dylibs[0].cmd, LOAD_COMMAND.LOAD_DYLIB)
        dylib = dylibs[0].variant
        self.assertEqual(dylib.name.file_offset, THIN_COMMAND_OFFS[2] + 24)
        self.assertEqual(dylib.name.load_string(), INSTALL_NAME)
        self.assertEqual(str(dylib.current_version), '1292.100.5')
        self.assertEqual(str(dylib.compatibility_version), '1.0.0')
        self.assertEqual(dylib.timestamp, 2)

    def test_rpath(self):
        rpaths = self.image.rpaths()
        self.assertEqual(len(rpaths), 1)
        self.assertEqual(rpaths[0].path.file_offset, THIN_COMMAND_OFFS[3] + 12)
        self.assertEqual(rpaths[0].path.load_string(), RPATH)
        # nothing is cached; a second load reads the file again
        self.assertEqual(rpaths[0].path.load_string(), RPATH)

    def test_uuid_and_source_version(self):
        commands = list(self.image.load_commands_iterator())
        self.assertEqual(str(commands[4].variant.uuid), '00010203-0405-0607-0809-0A0B0C0D0E0F')
        self.assertEqual(str(commands[6].variant.version), '1.2.3.4.5')

    def test_thread(self):
        thread = list(self.image.load_commands_iterator())[5].variant
        flavors = list(thread.flavors())
        self.assertEqual(len(flavors), 1)
        self.assertEqual((flavors[0].flavor, flavors[0].count), (4, 42))
        self.assertEqual(flavors[0].state_offset, THIN_COMMAND_OFFS[5] + 16)
        self.assertEqual(flavors[0].load_state(), list(range(42)))

    def test_segments(self):
        segments = list(self.image.segments())
        self.assertEqual(len(segments), 1)
        segment = segments[0]
        self.assertEqual(segment.segname, '__TEXT')
        self.assertEqual(segment.vmaddr, 0x100000000)
        self.assertEqual(str(segment.initprot), 'r-x')
        self.assertEqual(segment.nsects, 2)
        self.assertEqual(segment.sections_offset, FIRST_COMMAND_OFF + 72)

        sections = list(segment.sections_iterator())
        self.assertEqual([sect.sectname for sect in sections], ['__text', '__bss'])
        text, bss = sections
        self.assertEqual(text.section_type, SectionType.S_REGULAR)
        self.assertIn('S_ATTR_PURE_INSTRUCTIONS', text.attribute_names())
        self.assertEqual(text.reserved3, 0)
        self.assertFalse(text.is_zerofill)
        self.assertTrue(bss.is_zerofill)

    def test_section_data(self):
        text, bss = list(next(self.image.segments()).sections_iterator())
        self.assertEqual(text.read_data(), TEXT_DATA)

        sink = BytesIO()
        self.assertEqual(bss.read_data_to(sink), 0)
        self.assertEqual(sink.getvalue(), b'')

    def test_relocations(self):
        text = next(next(self.image.segments()).sections_iterator())
        relocations = text.relocations_iterator()
        self.assertEqual(len(relocations), 2)

        branch, quad = list(relocations)
        self.assertEqual(branch.r_address, 5)
        self.assertEqual((branch.r_symbolnum, branch.r_pcrel, branch.r_length, branch.r_extern, branch.r_type),
                         (3, 1, 2, 1, 2))
        self.assertFalse(branch.is_scattered())
        self.assertEqual(branch.length_name, 'long')
        self.assertEqual(branch.type_name(self.image.header.cputype), 'X86_64_RELOC_BRANCH')

        self.assertEqual((quad.r_symbolnum, quad.r_pcrel, quad.r_length, quad.r_extern, quad.r_type), (1, 0, 3, 0, 0))
        self.assertEqual(quad.length_name, 'quad')

    def test_scattered_relocation(self):
        # r_address is signed; the scattered bit is its sign bit
        reloc = RelocationInfo(-0x7ffffff0, 0)
        self.assertTrue(reloc.is_scattered())
        self.assertFalse(RelocationInfo(0x10, 0xffffffff).is_scattered())

    def test_arm_thumb_type_names(self):
        self.assertEqual(RelocationInfo(0, 6 << 28).type_name(CPUType.ARM), 'ARM_THUMB_RELOC_BR22')
        self.assertEqual(RelocationInfo(0, 7 << 28).type_name(CPUType.ARM), 'ARM_THUMB_32BIT_BRANCH')
        self.assertEqual(RelocationInfo(0, 5 << 28).type_name(CPUType.ARM), 'ARM_RELOC_BR24')
        self.assertEqual(RelocationInfo(0, 15 << 28).type_name(CPUType.ARM), '15')

    def test_symbols(self):
        symtab = self.image.symtab()
        self.assertEqual(symtab.nlist_size, 16)
        symbols = list(symtab.nlist_iterator())
        self.assertEqual(len(symbols), 4)
        main, source, alias, undefined = symbols

        self.assertEqual(main.name.load_string(), '_main')
        self.assertEqual(main.n_type.symbol_kind(), SymbolKind.SECTION)
        self.assertEqual(main.options().n_value, ValueOption.ADDRESS)
        self.assertTrue(main.n_type.is_external())
        self.assertEqual(main.n_value, 0x100000300)

        self.assertEqual(source.name.load_string(), '/tmp/foo.c')
        self.assertEqual(source.n_type.stab_type(), StabType.SOURCE_FILE_NAME)
        self.assertEqual(source.type_name, 'SOURCE_FILE_NAME')
        self.assertEqual(source.options(), (NameOption.SOME, SectOption.SOME, DescOption.NONE, ValueOption.ADDRESS))

        self.assertTrue(alias.n_type.is_indirect())
        self.assertEqual(alias.options().n_value, ValueOption.INDIRECT)
        self.assertEqual(alias.indirect_name().load_string(), '_main')

        self.assertIsNone(undefined.name)
        self.assertTrue(undefined.n_type.is_undefined())
        self.assertEqual(undefined.library_ordinal, 1)
        self.assertIsNone(undefined.indirect_name())

    def test_serialize(self):
        first = json.dumps(self.image.serialize())
        second = json.dumps(self.image.serialize())
        self.assertEqual(first, second)

        data = json.loads(first)
        self.assertEqual(data['header']['arch'], 'x86_64')
        self.assertEqual([command['cmd'] for command in data['load_commands']], THIN_COMMANDS)
        self.assertEqual(data['load_commands'][3]['path'], RPATH)
        self.assertEqual(len(data['load_commands'][0]['sections']), 2)


class IndirectSymbolTestCase(unittest.TestCase):
    def test_index_outside_string_table(self):
        image = build_thin()
        # n_value of the third nlist_64
        image.put(SYM_OFF + 2 * 16 + 8, len(STR_TABLE).to_bytes(8, 'little'))
        alias = list(parse(image.get()).symtab().nlist_iterator())[2]

        with self.assertRaises(MalformedMachOException):
            alias.indirect_name()

        enable_error_capture()
        self.assertIsNone(alias.serialize()['indirect'])
        disable_error_capture()


class BigEndian32TestCase(unittest.TestCase):

    def setUp(self):
        self.image = parse(build_ppc().get())

    def test_header(self):
        header = self.image.header
        self.assertEqual(header.magic, Magic.BIT32)
        self.assertEqual(header.cpu_name, 'ppc')
        self.assertIsNone(header.reserved)
        self.assertFalse(self.image.context.is_64)
        self.assertEqual(self.image.context.byte_order, 'big')
        self.assertEqual(self.image.commands_offset, 28)

    def test_segment(self):
        segment = next(self.image.segments())
        self.assertFalse(segment.is_64)
        self.assertEqual(segment.sections_offset, 28 + 56)
        text = next(segment.sections_iterator())
        self.assertEqual(text.sectname, '__text')
        self.assertIsNone(text.reserved3)
        self.assertEqual(text.read_data(), PPC_TEXT_DATA)

    def test_symbols(self):
        symtab = self.image.symtab()
        self.assertEqual(symtab.nlist_size, 12)
        symbol = next(iter(symtab.nlist_iterator()))
        self.assertEqual(symbol.name.load_string(), '_start')
        self.assertEqual(symbol.n_value, 0x1100)

    def test_thread_flavors(self):
        thread = list(self.image.load_commands_iterator())[2].variant
        flavors = list(thread.flavors())
        self.assertEqual([(flavor.flavor, flavor.count) for flavor in flavors], [(1, 2), (2, 1)])
        self.assertEqual(flavors[0].load_state(), [0x11, 0x22])
        self.assertEqual(flavors[1].load_state(), [0x33])


class LoadCommandVariantTestCase(unittest.TestCase):

    def setUp(self):
        self.image = parse(build_variants().get())
        self.commands = list(self.image.load_commands_iterator())

    def command(self, cmd):
        return next(command for command in self.commands if command.cmd == cmd)

    def test_all_decoded(self):
        self.assertEqual([command.name for command in self.commands], VARIANT_COMMANDS)
        self.assertNotIn(LcOther, [type(command.variant) for command in self.commands])

    def test_command_strings(self):
        for cmd, _, _, field, string in VARIANT_STRINGS:
            command = self.command(cmd)
            value = getattr(command.variant, field)
            self.assertIsInstance(value, LcStr)
            # relative to the start of the command it belongs to
            self.assertEqual(value.file_offset, command.offset + command.variant.payload_size)
            self.assertEqual(value.load_string(), string)

    def test_fvm(self):
        fvmfile = self.command(LOAD_COMMAND.FVMFILE).variant
        self.assertEqual(str(fvmfile.header_addr), '0x00004000')
        fvmlib = self.command(LOAD_COMMAND.IDFVMLIB).variant
        self.assertEqual(fvmlib.minor_version, 2)
        self.assertEqual(fvmlib.header_addr, 0x5000)

    def test_prebound_dylib(self):
        command = self.command(LOAD_COMMAND.PREBOUND_DYLIB)
        prebound = command.variant
        self.assertEqual(prebound.name.load_string(), PREBOUND_NAME)
        self.assertEqual(prebound.nmodules, len(PREBOUND_LINKED))
        self.assertIsInstance(prebound.linked_modules, BitVec)
        self.assertEqual(prebound.linked_modules.file_offset, command.offset + PREBOUND_LINKED_OFF)
        self.assertEqual(prebound.linked_modules.bytecount, len(PREBOUND_LINKED))
        self.assertEqual(prebound.linked_modules.load_bit_vector(), PREBOUND_LINKED)

    def test_routines_64(self):
        routines = self.command(LOAD_COMMAND.ROUTINES_64).variant
        self.assertTrue(routines.context.is_64)
        self.assertEqual(routines.payload_size, 72)
        self.assertEqual(routines.init_address, ROUTINES_INIT)
        self.assertEqual(str(routines.init_address), '0x0000000100003f00')
        self.assertEqual(routines.init_module, 1)

    def test_encryption_info_64(self):
        info = self.command(LOAD_COMMAND.ENCRYPTION_INFO_64).variant
        self.assertEqual((info.cryptoff, info.cryptsize, info.cryptid, info.pad), (0x4000, 0x8000, 1, 0))

    def test_version_min(self):
        version_min = self.command(LOAD_COMMAND.VERSION_MIN_MACOSX).variant
        self.assertEqual(version_min.version, Version32(VERSION_MIN))
        self.assertEqual(str(version_min.version), '10.15.0')
        self.assertEqual(str(version_min.sdk), '11.3.0')

    def test_build_version(self):
        build = self.command(LOAD_COMMAND.BUILD_VERSION).variant
        self.assertIs(build.platform, PlatformType.MACOS)
        self.assertEqual(str(build.minos), '11.0.0')
        self.assertEqual(str(build.sdk), '12.3.0')
        self.assertEqual(build.ntools, len(BUILD_TOOLS))

        tools = list(build.tools())
        self.assertEqual([tool.tool for tool in tools], [ToolType.CLANG, ToolType.LD, 99])
        self.assertEqual([str(tool) for tool in tools], ['clang 1300.0.29', 'ld 764.0.0', '99 1.0.0'])
        self.assertEqual(build.serialize()['tools'][0], {'tool': 'CLANG', 'version': '1300.0.29'})

    def test_build_version_tools_past_command(self):
        command = self.command(LOAD_COMMAND.BUILD_VERSION)
        image = build_variants()
        # ntools
        image.put(command.offset + 20, 5)
        build = next(lc.variant for lc in parse(image.get()).load_commands_iterator()
                     if lc.cmd == LOAD_COMMAND.BUILD_VERSION)

        enable_error_capture()
        self.assertEqual(len(list(build.tools())), len(BUILD_TOOLS))
        assert_error_printed('runs past the end of its command')
        disable_error_capture()

    def test_dyld_info(self):
        dyld_info = self.command(LOAD_COMMAND.DYLD_INFO_ONLY).variant
        self.assertEqual([getattr(dyld_info, field) for field in dyld_info.fields], DYLD_INFO_VALUES)
        self.assertEqual((dyld_info.export_off, dyld_info.export_size), (0x8070, 0x30))

    def test_linker_option_strings(self):
        linker_option = self.command(LOAD_COMMAND.LINKER_OPTION).variant
        self.assertEqual(linker_option.count, len(LINKER_OPTIONS))
        self.assertEqual(list(linker_option.strings()), LINKER_OPTIONS)

    def test_ident_strings(self):
        ident = self.command(LOAD_COMMAND.IDENT).variant
        # trailing padding yields nothing
        self.assertEqual(list(ident.strings()), IDENT_STRINGS)

    def test_offset_fields_keep_command_position(self):
        expected = [
            (LOAD_COMMAND.NOTE, NOTE_OFFSET),
            (LOAD_COMMAND.TWOLEVEL_HINTS, HINTS_OFFSET),
            (LOAD_COMMAND.SYMSEG, SYMSEG_OFFSET),
        ]
        for cmd, payload_offset in expected:
            command = self.command(cmd)
            self.assertEqual(command.variant.offset, payload_offset)
            self.assertEqual(command.variant.command_offset, command.offset)
            self.assertEqual(command.variant.end, command.offset + command.cmdsize)

        note = self.command(LOAD_COMMAND.NOTE).variant
        self.assertEqual((note.data_owner, note.size), (NOTE_OWNER, NOTE_SIZE))
        self.assertEqual(self.command(LOAD_COMMAND.TWOLEVEL_HINTS).variant.nhints, HINTS_COUNT)
        self.assertEqual(self.command(LOAD_COMMAND.SYMSEG).variant.size, SYMSEG_SIZE)

    def test_serialize(self):
        data = json.loads(json.dumps(self.image.serialize()))
        commands = data['load_commands']
        note = commands[VARIANT_COMMANDS.index('LC_NOTE')]
        self.assertEqual(note['offset'], NOTE_OFFSET)
        self.assertEqual(note['command_offset'], self.command(LOAD_COMMAND.NOTE).offset)
        self.assertEqual(commands[VARIANT_COMMANDS.index('LC_LINKER_OPTION')]['strings'], LINKER_OPTIONS)
        self.assertEqual(commands[VARIANT_COMMANDS.index('LC_SUB_CLIENT')]['client'], 'Safari')
        self.assertEqual(commands[VARIANT_COMMANDS.index('LC_PREBOUND_DYLIB')]['linked_modules'],
                         PREBOUND_LINKED.hex())


class LoadCommandVariant32TestCase(unittest.TestCase):

    def setUp(self):
        self.commands = list(parse(build_variants_32().get()).load_commands_iterator())

    def test_routines_32(self):
        routines = self.commands[0].variant
        self.assertFalse(routines.context.is_64)
        self.assertEqual(routines.payload_size, 40)
        self.assertEqual(routines.init_address, ROUTINES_32_INIT)
        self.assertEqual(routines.init_module, 1)

    def test_encryption_info_32(self):
        info = self.commands[1].variant
        self.assertEqual((info.cryptoff, info.cryptsize, info.cryptid), (0x1000, 0x2000, 0))
        self.assertIsNone(info.pad)

    def test_dylinker(self):
        command = self.commands[2]
        self.assertEqual(command.offset, 28 + 40 + 20)
        self.assertEqual(command.variant.name.load_string(), '/usr/lib/dyld')


class MalformedTestCase(unittest.TestCase):

    def setUp(self):
        self.image = build_thin()

    def tearDown(self):
        opts.STRICT_SEQUENCES = False
        ignore.MALFORMED = False
        disable_error_capture()

    def test_small_cmdsize(self):
        self.image.put(THIN_COMMAND_OFFS[1] + 4, 4)
        macho = parse(self.image.get())

        enable_error_capture()
        names = [command.name for command in macho.load_commands_iterator()]
        self.assertEqual(names, ['LC_SEGMENT_64'])
        assert_error_printed('stopped early')
        self.assertNotIn('ncmds says', error_buffer)

    def test_ncmds_mismatch(self):
        # sizeofcmds now ends cleanly after the first command
        self.image.put(20, THIN_COMMAND_OFFS[1] - FIRST_COMMAND_OFF)
        macho = parse(self.image.get())

        enable_error_capture()
        self.assertEqual(len(list(macho.load_commands_iterator())), 1)
        assert_error_printed('ncmds says 7 load commands, sizeofcmds held 1')
        self.assertNotIn('stopped early', error_buffer)

    def test_small_cmdsize_strict(self):
        self.image.put(THIN_COMMAND_OFFS[1] + 4, 4)
        macho = parse(self.image.get())
        opts.STRICT_SEQUENCES = True
        with self.assertRaises(MalformedMachOException):
            list(macho.load_commands_iterator())

    def test_command_past_sizeofcmds(self):
        self.image.put(20, THIN_SIZEOFCMDS - 8)
        macho = parse(self.image.get())

        enable_error_capture()
        commands = list(macho.load_commands_iterator())
        self.assertEqual(len(commands), 6)

    def test_sizeofcmds_past_eof(self):
        self.image.put(20, 0x10000)
        with self.assertRaises(MalformedMachOException):
            parse(self.image.get())

        ignore.MALFORMED = True
        enable_error_capture()
        macho = parse(self.image.get())
        self.assertEqual(len(list(macho.load_commands_iterator())), 7)

    def test_truncated_file(self):
        data = bytes(self.image.data)[:100]
        with self.assertRaises(MalformedMachOException):
            parse(BytesIO(data))

    def test_truncated_header(self):
        with self.assertRaises(BadBufferLengthException):
            parse(BytesIO(bytes(self.image.data)[:16]))

    def test_unknown_command(self):
        self.image.put(THIN_COMMAND_OFFS[4], 0x99)
        macho = parse(self.image.get())
        commands = list(macho.load_commands_iterator())
        self.assertEqual(len(commands), 7)
        self.assertIsInstance(commands[4].variant, LcOther)
        self.assertEqual(commands[4].name, 'LC_UNKNOWN(0x99)')
        self.assertEqual(commands[5].name, 'LC_UNIXTHREAD')

    def test_nsects_past_command(self):
        # nsects of the segment_command_64
        self.image.put(FIRST_COMMAND_OFF + 64, 3)
        segment = next(parse(self.image.get()).segments())

        enable_error_capture()
        self.assertEqual(len(list(segment.sections_iterator())), 2)
        assert_error_printed('runs past its command')

    def test_symbols_past_eof(self):
        # nsyms
        self.image.put(THIN_COMMAND_OFFS[1] + 12, 100)
        symtab = parse(self.image.get()).symtab()

        enable_error_capture()
        self.assertEqual(len(list(symtab.nlist_iterator())), 7)


class StabTestCase(unittest.TestCase):
    def test_table_is_complete(self):
        self.assertEqual(len(StabType), 30)
        self.assertEqual(set(STAB_OPTIONS), set(StabType))

    def test_classification(self):
        self.assertEqual(Ntype(0x24).stab_type(), StabType.PROCEDURE)
        self.assertEqual(Ntype(0x24).options(), STAB_OPTIONS[StabType.PROCEDURE])
        self.assertEqual(Ntype(0x66).options().n_sect, SectOption.ZERO)
        self.assertEqual(Ntype(0x0e).symbol_kind(), SymbolKind.SECTION)
        self.assertEqual(Ntype(0x1f).is_private_external(), True)

    def test_unknown_codes(self):
        self.assertIsNone(Ntype(0xe6).stab_type())
        self.assertEqual(Ntype(0xe6).options(), RAW_OPTIONS)
        self.assertIsNone(Ntype(0x06).symbol_kind())
        self.assertEqual(Ntype(0x06).options(), RAW_OPTIONS)


class PrimitivesTestCase(unittest.TestCase):
    def test_display(self):
        self.assertEqual(str(Version32(LIBSYSTEM_VERSION)), '1292.100.5')
        self.assertEqual(Version64(SOURCE_VERSION).parts, (1, 2, 3, 4, 5))
        self.assertEqual(str(Hex(0x10, 4)), '0x00000010')
        self.assertEqual(Hex(0x10), 0x10)
        self.assertEqual(str(VmProt(7)), 'rwx')
        self.assertEqual(str(VmProt(1)), 'r--')
        self.assertEqual(Uuid(UUID_BYTES).serialize(), '00010203-0405-0607-0809-0A0B0C0D0E0F')

    def test_lcstr(self):
        reader = SharedReader(BytesIO(b'abc\x00def'))
        self.assertEqual(LcStr(reader, 0).load_string(), 'abc')
        # runs into EOF without a terminator
        self.assertEqual(LcStr(reader, 4).load_string(), 'def')

        missing = LcStr(reader, 100)
        with self.assertRaises(BadBufferLengthException):
            missing.load_string()
        self.assertEqual(str(missing), '')
        self.assertEqual(repr(missing), '<error>')
        self.assertIsNone(missing.serialize())

    def test_bitvec(self):
        reader = SharedReader(BytesIO(b'\x00\xff\x0f'))
        self.assertEqual(BitVec(reader, 1, 2).load_bit_vector(), b'\xff\x0f')
        self.assertIsNone(BitVec(reader, 1, 10).serialize())

    def test_copy_to(self):
        reader = SharedReader(BytesIO(bytes(range(100))))
        sink = BytesIO()
        self.assertEqual(reader.copy_to(10, 50, sink, chunk_size=7), 50)
        self.assertEqual(sink.getvalue(), bytes(range(10, 60)))


class LogTestCase(unittest.TestCase):

    def tearDown(self):
        log.LOG_LEVEL = LogLevel.WARN
        disable_error_capture()

    def test_levels(self):
        enable_error_capture()
        log.LOG_LEVEL = LogLevel.ERROR
        log.warn('quiet')
        self.assertEqual(error_buffer, '')

        log.error('loud')
        self.assertTrue(error_buffer.startswith('ERROR - otoolkit.test_unit:L#'), error_buffer)
        assert_error_printed('LogTestCase:test_levels() - loud')

    def test_none_silences_errors(self):
        enable_error_capture()
        log.LOG_LEVEL = LogLevel.NONE
        log.error('nothing')
        self.assertEqual(error_buffer, '')


class TableTestCase(unittest.TestCase):
    def test_render(self):
        opts.DISABLE_COLOR = True
        table = Table()
        table.titles = ['cmd', 'fields']
        table.rows.append(['LC_UUID', 'uuid: 1'])
        table.rows.append(['LC_RPATH', 'path: a\nextra: b'])
        lines = table.render().split('\n')
        self.assertEqual(len(lines), 4)
        self.assertTrue(lines[0].startswith('cmd'))
        self.assertTrue(lines[3].strip().startswith('extra: b'))


class CpuNameTestCase(unittest.TestCase):
    def test_names(self):
        self.assertEqual(cpu_name(CPUType.X86_64, 3), 'x86_64')
        self.assertEqual(cpu_name(CPUType.ARM64, CPU_SUBTYPE_LIB64 | 2), 'arm64e')
        self.assertEqual(cpu_name(CPUType.ARM, CPUSubTypeARM.V7EM), 'arm_v7em')
        self.assertEqual(cpu_name(CPUType.POWERPC, 100), 'powerpc_970')
        self.assertEqual(cpu_name(CPUType.SPARC, 0), 'sparc (cpusubtype 0)')
        self.assertEqual(cpu_name(99, 0), 'cputype 99 cpusubtype 0')


class PackageTestCase(unittest.TestCase):
    def test_exports(self):
        for name in ['parse', 'parse_file', 'FatObject', 'MachObject', 'LoadCommand', 'Nlist', 'Section']:
            self.assertTrue(hasattr(otoolkit, name), name)


if __name__ == '__main__':
    unittest.main()
