#
#  otoolkit | otoolkit
#  load_commands.py
#
#  The load command stream: the generic {cmd, cmdsize} envelope, one payload class per command kind,
#    and the iterator walking `sizeofcmds` bytes of them.
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

from typing import List

from lib0tk.log import log
from otoolkit.base import LcVariant, serialize_value, enum_or_int
from otoolkit.exceptions import MachOException, MalformedMachOException
from otoolkit.primitives import Uuid, Version32, Version64, BitVec, Hex
from otoolkit.segment import LcSegment
from otoolkit.symtab import LcSymtab
from otoolkit.util import sequence_stopped
from otoolkit_macho import *


class LcDylib(LcVariant):
    kind = 'Dylib'
    STRUCT = dylib_command
    LC_STR_FIELDS = ('name',)
    FIELD_TYPES = {
        'current_version': Version32,
        'compatibility_version': Version32
    }


class LcSubFramework(LcVariant):
    kind = 'SubFramework'
    STRUCT = sub_framework_command
    LC_STR_FIELDS = ('umbrella',)


class LcSubClient(LcVariant):
    kind = 'SubClient'
    STRUCT = sub_client_command
    LC_STR_FIELDS = ('client',)


class LcSubUmbrella(LcVariant):
    kind = 'SubUmbrella'
    STRUCT = sub_umbrella_command
    LC_STR_FIELDS = ('sub_umbrella',)


class LcSubLibrary(LcVariant):
    kind = 'SubLibrary'
    STRUCT = sub_library_command
    LC_STR_FIELDS = ('sub_library',)


class LcPreboundDylib(LcVariant):
    """
    `linked_modules` is a bit vector, one bit per module, `nmodules` bytes long
    """
    kind = 'PreboundDylib'
    STRUCT = prebound_dylib_command
    LC_STR_FIELDS = ('name',)

    def post_init(self):
        # the raw struct value is a command relative offset, swap it for a deferred read
        self.linked_modules = BitVec(self.reader, self.command_offset + self.linked_modules, self.nmodules)


class LcDylinker(LcVariant):
    kind = 'Dylinker'
    STRUCT = dylinker_command
    LC_STR_FIELDS = ('name',)


class ThreadState:
    """
    One {flavor, count} header of a thread command; the machine state is `count` 32 bit words at `state_offset`
    """

    def __init__(self, reader, flavor, count, state_offset, byte_order):
        self.reader = reader
        self.flavor = flavor
        self.count = count
        self.state_offset = state_offset
        self.byte_order = byte_order

    def load_state(self) -> List[int]:
        raw = self.reader.read_bytes(self.state_offset, self.count * 4)
        return [int.from_bytes(raw[i:i + 4], self.byte_order) for i in range(0, len(raw), 4)]

    def serialize(self):
        return {'flavor': self.flavor, 'count': self.count, 'state_offset': self.state_offset}


class LcThread(LcVariant):
    kind = 'Thread'
    STRUCT = thread_command

    def flavors(self):
        """
        Yield a ThreadState per flavor. Ends exactly when the flavors consumed reach cmdsize - 8.
        """
        header_size = thread_state_header.size()
        pos = self.command_offset + self.payload_size
        index = 0
        while pos < self.end:
            try:
                if pos + header_size > self.end:
                    raise MalformedMachOException(f'Truncated thread state header at {hex(pos)}')
                header = self.reader.read_struct(pos, thread_state_header, self.context.byte_order)
                state_size = header.count * 4
                if pos + header_size + state_size > self.end:
                    raise MalformedMachOException(f'Thread flavor {header.flavor} ({header.count} words) runs past '
                                                  f'the end of its command')
            except (MachOException, OSError) as ex:
                sequence_stopped('thread flavors', index, ex)
                return
            yield ThreadState(self.reader, header.flavor, header.count, pos + header_size, self.context.byte_order)
            pos += header_size + state_size
            index += 1

    def serialize(self):
        out = super().serialize()
        out['flavors'] = [flavor.serialize() for flavor in self.flavors()]
        return out


class LcRoutines(LcVariant):
    kind = 'Routines'
    STRUCT = routines_command
    WIDE_COMMANDS = (LOAD_COMMAND.ROUTINES_64,)
    FIELD_TYPES = {
        'init_address': Hex
    }


class LcDysymtab(LcVariant):
    kind = 'Dysymtab'
    STRUCT = dysymtab_command


class LcTwoLevelHints(LcVariant):
    kind = 'TwoLevelHints'
    STRUCT = twolevel_hints_command


class LcPrebindCksum(LcVariant):
    kind = 'PrebindCksum'
    STRUCT = prebind_cksum_command
    FIELD_TYPES = {
        'cksum': lambda value: Hex(value, 4)
    }


class LcUuid(LcVariant):
    kind = 'Uuid'
    STRUCT = uuid_command
    FIELD_TYPES = {
        'uuid': Uuid
    }


class LcRpath(LcVariant):
    kind = 'Rpath'
    STRUCT = rpath_command
    LC_STR_FIELDS = ('path',)


class LcLinkEditData(LcVariant):
    kind = 'LinkEditData'
    STRUCT = linkedit_data_command


class LcEncryptionInfo(LcVariant):
    """
    `pad` exists only in LC_ENCRYPTION_INFO_64; it is None for the 32 bit form
    """
    kind = 'EncryptionInfo'
    STRUCT = encryption_info_command
    STRUCT_64 = encryption_info_command_64
    WIDE_COMMANDS = (LOAD_COMMAND.ENCRYPTION_INFO_64,)

    def post_init(self):
        if not self.context.is_64:
            self.pad = None


class LcVersionMin(LcVariant):
    kind = 'VersionMin'
    STRUCT = version_min_command
    FIELD_TYPES = {
        'version': Version32,
        'sdk': Version32
    }


class BuildToolVersion:
    def __init__(self, tool, version):
        self.tool = enum_or_int(ToolType)(tool)
        self.version = Version32(version)

    def serialize(self):
        return {'tool': serialize_value(self.tool), 'version': str(self.version)}

    def __str__(self):
        name = self.tool.name.lower() if isinstance(self.tool, ToolType) else str(self.tool)
        return f'{name} {self.version}'


class LcBuildVersion(LcVariant):
    kind = 'BuildVersion'
    STRUCT = build_version_command
    FIELD_TYPES = {
        'platform': enum_or_int(PlatformType),
        'minos': Version32,
        'sdk': Version32
    }

    def tools(self):
        """ Yield the `ntools` build_tool_version records following the command """
        record_size = build_tool_version.size()
        base = self.command_offset + self.payload_size
        for index in range(self.ntools):
            off = base + index * record_size
            try:
                if off + record_size > self.end:
                    raise MalformedMachOException(f'Build tool {index} runs past the end of its command')
                struct = self.reader.read_struct(off, build_tool_version, self.context.byte_order)
            except (MachOException, OSError) as ex:
                sequence_stopped('build tools', index, ex)
                return
            yield BuildToolVersion(struct.tool, struct.version)

    def serialize(self):
        out = super().serialize()
        out['tools'] = [tool.serialize() for tool in self.tools()]
        return out


class LcDyldInfo(LcVariant):
    kind = 'DyldInfo'
    STRUCT = dyld_info_command


def _strings_in(reader, start, end, count=None):
    """
    Split the zero terminated strings packed in [start, end). Trailing zero padding yields nothing.
    """
    if end <= start:
        return
    raw = reader.read_bytes(start, end - start)
    pos = 0
    index = 0
    while pos < len(raw) and (count is None or index < count):
        term = raw.find(b'\x00', pos)
        if term == -1:
            term = len(raw)
        if term == pos and count is None:
            # padding
            break
        yield raw[pos:term].decode('utf-8', errors='replace')
        pos = term + 1
        index += 1


class LcLinkerOption(LcVariant):
    kind = 'LinkerOption'
    STRUCT = linker_option_command

    def strings(self):
        """ Yield the `count` option strings packed after the command """
        return _strings_in(self.reader, self.command_offset + self.payload_size, self.end, self.count)

    def serialize(self):
        out = super().serialize()
        out['strings'] = list(self.strings())
        return out


class LcSymSeg(LcVariant):
    kind = 'SymSeg'
    STRUCT = symseg_command


class LcFvmFile(LcVariant):
    kind = 'FvmFile'
    STRUCT = fvmfile_command
    LC_STR_FIELDS = ('name',)
    FIELD_TYPES = {
        'header_addr': lambda value: Hex(value, 4)
    }


class LcFvmLib(LcVariant):
    kind = 'FvmLib'
    STRUCT = fvmlib_command
    LC_STR_FIELDS = ('name',)
    FIELD_TYPES = {
        'header_addr': lambda value: Hex(value, 4)
    }


class LcIdent(LcVariant):
    """ Obsolete; the command is followed by zero terminated strings up to cmdsize """
    kind = 'Ident'
    STRUCT = ident_command

    def strings(self):
        return _strings_in(self.reader, self.command_offset + self.payload_size, self.end)

    def serialize(self):
        out = super().serialize()
        out['strings'] = list(self.strings())
        return out


class LcEntryPoint(LcVariant):
    kind = 'EntryPoint'
    STRUCT = entry_point_command
    FIELD_TYPES = {
        'entryoff': Hex
    }


class LcSourceVersion(LcVariant):
    kind = 'SourceVersion'
    STRUCT = source_version_command
    FIELD_TYPES = {
        'version': Version64
    }


class LcNote(LcVariant):
    kind = 'Note'
    STRUCT = note_command


class LcOther(LcVariant):
    """ Any command without a dedicated decoder; only cmd/cmdsize are known """
    kind = 'Other'


LOAD_COMMAND_MAP = {
    LOAD_COMMAND.SEGMENT: LcSegment,
    LOAD_COMMAND.SEGMENT_64: LcSegment,
    LOAD_COMMAND.ID_DYLIB: LcDylib,
    LOAD_COMMAND.LOAD_DYLIB: LcDylib,
    LOAD_COMMAND.LOAD_WEAK_DYLIB: LcDylib,
    LOAD_COMMAND.REEXPORT_DYLIB: LcDylib,
    LOAD_COMMAND.LAZY_LOAD_DYLIB: LcDylib,
    LOAD_COMMAND.LOAD_UPWARD_DYLIB: LcDylib,
    LOAD_COMMAND.SUB_FRAMEWORK: LcSubFramework,
    LOAD_COMMAND.SUB_CLIENT: LcSubClient,
    LOAD_COMMAND.SUB_UMBRELLA: LcSubUmbrella,
    LOAD_COMMAND.SUB_LIBRARY: LcSubLibrary,
    LOAD_COMMAND.PREBOUND_DYLIB: LcPreboundDylib,
    LOAD_COMMAND.ID_DYLINKER: LcDylinker,
    LOAD_COMMAND.LOAD_DYLINKER: LcDylinker,
    LOAD_COMMAND.DYLD_ENVIRONMENT: LcDylinker,
    LOAD_COMMAND.THREAD: LcThread,
    LOAD_COMMAND.UNIXTHREAD: LcThread,
    LOAD_COMMAND.ROUTINES: LcRoutines,
    LOAD_COMMAND.ROUTINES_64: LcRoutines,
    LOAD_COMMAND.SYMTAB: LcSymtab,
    LOAD_COMMAND.DYSYMTAB: LcDysymtab,
    LOAD_COMMAND.TWOLEVEL_HINTS: LcTwoLevelHints,
    LOAD_COMMAND.PREBIND_CKSUM: LcPrebindCksum,
    LOAD_COMMAND.UUID: LcUuid,
    LOAD_COMMAND.RPATH: LcRpath,
    LOAD_COMMAND.CODE_SIGNATURE: LcLinkEditData,
    LOAD_COMMAND.SEGMENT_SPLIT_INFO: LcLinkEditData,
    LOAD_COMMAND.FUNCTION_STARTS: LcLinkEditData,
    LOAD_COMMAND.DATA_IN_CODE: LcLinkEditData,
    LOAD_COMMAND.DYLIB_CODE_SIGN_DRS: LcLinkEditData,
    LOAD_COMMAND.LINKER_OPTIMIZATION_HINT: LcLinkEditData,
    LOAD_COMMAND.DYLD_EXPORTS_TRIE: LcLinkEditData,
    LOAD_COMMAND.DYLD_CHAINED_FIXUPS: LcLinkEditData,
    LOAD_COMMAND.ENCRYPTION_INFO: LcEncryptionInfo,
    LOAD_COMMAND.ENCRYPTION_INFO_64: LcEncryptionInfo,
    LOAD_COMMAND.VERSION_MIN_MACOSX: LcVersionMin,
    LOAD_COMMAND.VERSION_MIN_IPHONEOS: LcVersionMin,
    LOAD_COMMAND.VERSION_MIN_WATCHOS: LcVersionMin,
    LOAD_COMMAND.VERSION_MIN_TVOS: LcVersionMin,
    LOAD_COMMAND.BUILD_VERSION: LcBuildVersion,
    LOAD_COMMAND.DYLD_INFO: LcDyldInfo,
    LOAD_COMMAND.DYLD_INFO_ONLY: LcDyldInfo,
    LOAD_COMMAND.LINKER_OPTION: LcLinkerOption,
    LOAD_COMMAND.SYMSEG: LcSymSeg,
    LOAD_COMMAND.FVMFILE: LcFvmFile,
    LOAD_COMMAND.LOADFVMLIB: LcFvmLib,
    LOAD_COMMAND.IDFVMLIB: LcFvmLib,
    LOAD_COMMAND.IDENT: LcIdent,
    LOAD_COMMAND.MAIN: LcEntryPoint,
    LOAD_COMMAND.SOURCE_VERSION: LcSourceVersion,
    LOAD_COMMAND.NOTE: LcNote,
}


class LoadCommand:
    """
    Generic envelope of one load command; `variant` holds the decoded payload
    """

    def __init__(self, cmd: int, cmdsize: int, offset: int, variant: LcVariant):
        self.cmd = cmd
        self.cmdsize = cmdsize
        self.offset = offset
        self.variant = variant

    @property
    def name(self) -> str:
        return load_command_name(self.cmd)

    @property
    def kind(self) -> str:
        return self.variant.kind

    def serialize(self):
        out = {
            'cmd': self.name,
            'cmdsize': self.cmdsize,
            'command_offset': self.offset
        }
        out.update(self.variant.serialize())
        return out

    def __str__(self):
        return f'{self.name} (cmdsize={self.cmdsize}) {self.variant}'


class LoadCommandIterator:
    """
    Walks the `sizeofcmds` bytes following the mach header, one load command at a time.

    The position always advances by the command's own cmdsize, so padded or unknown commands are skipped cleanly.
    A cmdsize below 8, or one that would run past sizeofcmds, ends the iteration (see util.sequence_stopped).

    Each iter() starts over from the first command.
    """

    def __init__(self, image):
        self.image = image
        self.start = image.commands_offset
        self.end = image.commands_offset + image.header.sizeofcmds

    def __iter__(self):
        image = self.image
        pos = self.start
        index = 0
        while pos < self.end:
            try:
                if pos + BYTES_PER_LOAD_COMMAND > self.end:
                    raise MalformedMachOException(f'Load command {index} header at {hex(pos)} runs past sizeofcmds')
                cmd = image.reader.read_struct(pos, load_command, image.context.byte_order)
                if cmd.cmdsize < BYTES_PER_LOAD_COMMAND:
                    raise MalformedMachOException(f'Load command {index} at {hex(pos)} has cmdsize {cmd.cmdsize}')
                if pos + cmd.cmdsize > self.end:
                    raise MalformedMachOException(f'Load command {index} at {hex(pos)} runs past sizeofcmds')
                variant_type = LOAD_COMMAND_MAP.get(cmd.cmd, LcOther)
                variant = variant_type.from_image(image, cmd)
            except (MachOException, OSError, ValueError) as ex:
                sequence_stopped('load commands', index, ex)
                return
            log.debug_more(f'{load_command_name(cmd.cmd)} at {hex(pos)}')
            yield LoadCommand(cmd.cmd, cmd.cmdsize, pos, variant)
            pos += cmd.cmdsize
            index += 1

        if index != image.header.ncmds:
            log.warn(f'ncmds says {image.header.ncmds} load commands, sizeofcmds held {index}')
