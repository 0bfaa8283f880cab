#
#  otoolkit | otoolkit
#  macho.py
#
#  One architecture's Mach-O image: its header and its load command stream.
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

from typing import Optional, List, Iterator

from lib0tk.log import log
from otoolkit.exceptions import BadMagicException
from otoolkit.load_commands import LoadCommandIterator, LcDylib, LcRpath, LoadCommand
from otoolkit.magic import Magic, ObjectKind
from otoolkit.primitives import X64Context, Hex
from otoolkit.reader import SharedReader
from otoolkit.segment import LcSegment
from otoolkit.symtab import LcSymtab
from otoolkit.util import macho_is_malformed
from otoolkit_macho import (mach_header, mach_header_64, MH_FILETYPE, MH_FLAGS, CPUType, CPU_NAMES, CPU_SUBTYPES,
                            CPU_SUBTYPE_MASK)


def masked_cpusubtype(cpusubtype: int) -> int:
    return cpusubtype & ~CPU_SUBTYPE_MASK & 0xffffffff


def cpusubtype_feature_flags(cpusubtype: int) -> int:
    return (cpusubtype & CPU_SUBTYPE_MASK) >> 24


def cpu_name(cputype: int, cpusubtype: int) -> str:
    """
    otool/lipo style arch name ("x86_64", "arm64e", ...), falling back to the cpu type name or raw values
    """
    subtype = masked_cpusubtype(cpusubtype)
    name = CPU_NAMES.get((cputype, subtype))
    if name is not None:
        return name
    try:
        name = CPUType(cputype).name.lower()
    except ValueError:
        return f'cputype {cputype} cpusubtype {subtype}'
    subtypes = CPU_SUBTYPES.get(cputype)
    if subtypes is not None:
        try:
            return f'{name}_{subtypes(subtype).name.lower().lstrip("_")}'
        except ValueError:
            pass
    return f'{name} (cpusubtype {subtype})'


class MachHeader:
    """
    mach_header / mach_header_64.

    `cpusubtype` is kept raw; masked_cpusubtype and feature_flags split it. `reserved` is None for 32 bit images.
    """

    def __init__(self, magic: Magic, struct):
        self.magic = magic
        self.cputype = struct.cputype
        self.cpusubtype = struct.cpusubtype
        self.filetype = struct.filetype
        self.ncmds = struct.ncmds
        self.sizeofcmds = struct.sizeofcmds
        self.flags = struct.flags
        self.reserved = struct.reserved if magic.is_64 else None

    @staticmethod
    def parse(reader: SharedReader, base_offset: int):
        """
        Parse the header of the image at `base_offset`

        :param reader: Backing file
        :param base_offset: 0 for thin files, the slice offset for fat slices
        :return: (MachHeader, absolute offset of the first load command)
        """
        raw_magic = reader.read_int(base_offset, 4, 'big')
        magic = Magic.from_raw(raw_magic)
        if magic.is_fat:
            raise BadMagicException(raw_magic)

        struct_type = mach_header_64 if magic.is_64 else mach_header
        struct = reader.read_struct(base_offset, struct_type, magic.byte_order)
        log.debug_more(struct)

        return MachHeader(magic, struct), base_offset + struct_type.size()

    @property
    def masked_cpusubtype(self) -> int:
        return masked_cpusubtype(self.cpusubtype)

    @property
    def feature_flags(self) -> int:
        return cpusubtype_feature_flags(self.cpusubtype)

    @property
    def cpu_name(self) -> str:
        return cpu_name(self.cputype, self.cpusubtype)

    @property
    def filetype_name(self) -> str:
        try:
            return MH_FILETYPE(self.filetype).name
        except ValueError:
            return f'UNKNOWN({self.filetype})'

    def flag_names(self) -> List[str]:
        return [flag.name for flag in MH_FLAGS if self.flags & flag]

    def serialize(self):
        return {
            'magic': hex(self.magic.raw_value),
            'cputype': self.cputype,
            'cpusubtype': self.masked_cpusubtype,
            'caps': hex(self.feature_flags),
            'arch': self.cpu_name,
            'filetype': self.filetype_name,
            'ncmds': self.ncmds,
            'sizeofcmds': self.sizeofcmds,
            'flags': self.flag_names(),
            'reserved': self.reserved
        }


class MachObject:
    """
    One decoded image.

    Load commands, sections, symbols etc are never cached; every iterator re-reads through the shared reader.

    Attributes:
        self.reader: backing SharedReader, shared with every value decoded from this image

        self.file_offset: absolute offset of this image in the file (0 for thin files)

        self.commands_offset: absolute offset of the first load command

        self.context: byte order + width of this image
    """

    kind = ObjectKind.MACHO

    def __init__(self, reader: SharedReader, base_offset: int = 0):
        self.reader = reader
        self.file_offset = base_offset
        self.header, self.commands_offset = MachHeader.parse(reader, base_offset)
        self.context = X64Context(self.header.magic.byte_order, self.header.magic.is_64)

        if self.commands_offset + self.header.sizeofcmds > reader.size:
            macho_is_malformed(f'sizeofcmds ({self.header.sizeofcmds}) runs past the end of the file')

        log.debug(f'Loaded {self.header.cpu_name} image at {hex(base_offset)}')

    def load_commands_iterator(self) -> LoadCommandIterator:
        return LoadCommandIterator(self)

    def _variants(self, variant_type):
        for load_command in self.load_commands_iterator():
            if isinstance(load_command.variant, variant_type):
                yield load_command

    def segments(self) -> Iterator[LcSegment]:
        for load_command in self._variants(LcSegment):
            yield load_command.variant

    def symtab(self) -> Optional[LcSymtab]:
        for load_command in self._variants(LcSymtab):
            return load_command.variant
        return None

    def dylibs(self) -> List[LoadCommand]:
        """
        Every dylib command, including the image's own LC_ID_DYLIB; check `.cmd` to tell them apart
        """
        return list(self._variants(LcDylib))

    def rpaths(self) -> List[LcRpath]:
        return [load_command.variant for load_command in self._variants(LcRpath)]

    def serialize(self):
        return {
            'file_offset': self.file_offset,
            'header': self.header.serialize(),
            'load_commands': [load_command.serialize() for load_command in self.load_commands_iterator()]
        }

    def __str__(self):
        return f'MachObject({self.header.cpu_name} at {Hex(self.file_offset)})'
