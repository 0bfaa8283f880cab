#
#  otoolkit | otoolkit
#  fat.py
#
#  Universal ("fat") binaries: the big endian fat_header, its fat_arch table, and opening the slices.
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

from typing import List

from lib0tk.log import log
from otoolkit.exceptions import MachOException
from otoolkit.macho import MachObject, masked_cpusubtype, cpusubtype_feature_flags, cpu_name
from otoolkit.magic import ObjectKind
from otoolkit.reader import SharedReader
from otoolkit.util import sequence_stopped
from otoolkit_macho import fat_header, fat_arch, CPU_ARCH_ABI64, BYTES_PER_FAT_HEADER, BYTES_PER_FAT_ARCH


class FatArch:
    """
    One fat_arch record. `cpusubtype` is raw; masked_cpusubtype and feature_flags split it.
    """

    def __init__(self, reader: SharedReader, struct: fat_arch):
        self.reader = reader
        self.cputype = struct.cputype
        self.cpusubtype = struct.cpusubtype
        self.offset = struct.offset
        self.size = struct.size
        self.align = struct.align

    @property
    def masked_cpusubtype(self) -> int:
        return masked_cpusubtype(self.cpusubtype)

    @property
    def feature_flags(self) -> int:
        return cpusubtype_feature_flags(self.cpusubtype)

    @property
    def is_64(self) -> bool:
        return self.cputype & CPU_ARCH_ABI64 != 0

    @property
    def cpu_name(self) -> str:
        return cpu_name(self.cputype, self.cpusubtype)

    def object(self) -> MachObject:
        """ Parse the Mach-O image this slice points at """
        return MachObject(self.reader, self.offset)

    def serialize(self):
        return {
            'cputype': self.cputype,
            'cpusubtype': self.masked_cpusubtype,
            'caps': hex(self.feature_flags),
            'arch': self.cpu_name,
            'offset': self.offset,
            'size': self.size,
            'align': self.align
        }


class FatObject:
    """
    Fat header of a universal binary. The fat header and arch table are big endian no matter the magic.

    Attributes:
        self.nfat_arch: number of fat_arch records

        self.arch_list_offset: absolute offset of the first fat_arch record
    """

    kind = ObjectKind.FAT

    def __init__(self, reader: SharedReader):
        self.reader = reader
        header = reader.read_struct(0, fat_header, 'big')
        self.nfat_arch = header.nfat_arch
        self.arch_list_offset = BYTES_PER_FAT_HEADER
        log.debug(f'Fat file with {self.nfat_arch} archs')

    def arch_iterator(self):
        """
        Yield a fresh FatArch per record. Restartable; every call reads the table again.
        """
        for index in range(self.nfat_arch):
            try:
                struct = self.reader.read_struct(self.arch_list_offset + index * BYTES_PER_FAT_ARCH, fat_arch, 'big')
            except (MachOException, OSError) as ex:
                sequence_stopped('fat archs', index, ex)
                return
            log.debug_more(struct)
            yield FatArch(self.reader, struct)

    def objects(self) -> List[MachObject]:
        """
        Every slice that parses; slices that don't are logged and skipped.
        """
        objects = []
        for index, arch in enumerate(self.arch_iterator()):
            try:
                objects.append(arch.object())
            except (MachOException, OSError) as ex:
                log.error(f'Slice {index} ({arch.cpu_name}) at {hex(arch.offset)} could not be loaded: {ex}')
        return objects

    def serialize(self):
        return {
            'nfat_arch': self.nfat_arch,
            'archs': [arch.serialize() for arch in self.arch_iterator()]
        }
