#
#  otoolkit | otoolkit
#  reloc.py
#
#  relocation_info records attached to sections (<mach-o/reloc.h>)
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

from lib0tk.log import log
from otoolkit.exceptions import MachOException
from otoolkit.util import sequence_stopped
from otoolkit_macho import relocation_info, R_SCATTERED, RELOC_LENGTHS, RELOC_TYPES, RELOC_TYPE_NAMES


class RelocationInfo:
    """
    r_address is signed 32 bit; r_bitfield packs, from the low bit up:

        r_symbolnum:24, r_pcrel:1, r_length:2, r_extern:1, r_type:4
    """

    def __init__(self, r_address: int, r_bitfield: int):
        self.r_address = r_address
        self.r_bitfield = r_bitfield

    @classmethod
    def from_struct(cls, struct: relocation_info):
        return cls(struct.r_address, struct.r_bitfield)

    @property
    def r_symbolnum(self) -> int:
        return self.r_bitfield & 0x00ffffff

    @property
    def r_pcrel(self) -> int:
        return (self.r_bitfield & 0x01000000) >> 24

    @property
    def r_length(self) -> int:
        return (self.r_bitfield & 0x06000000) >> 25

    @property
    def r_extern(self) -> int:
        return (self.r_bitfield & 0x08000000) >> 27

    @property
    def r_type(self) -> int:
        return (self.r_bitfield & 0xf0000000) >> 28

    def is_scattered(self) -> bool:
        # checked on the address word, not the bitfield
        return (self.r_address & 0xffffffff) & R_SCATTERED != 0

    @property
    def length_name(self) -> str:
        return RELOC_LENGTHS[self.r_length]

    def type_name(self, cputype):
        """
        Machine specific name of r_type, e.g. X86_64_RELOC_BRANCH

        :param cputype: cputype of the image the relocation belongs to
        :return: name, or the bare number when the cpu or type is unknown
        """
        types = RELOC_TYPES.get(cputype)
        if types is None:
            return str(self.r_type)
        try:
            name = f'{types.__name__}_{types(self.r_type).name}'
        except ValueError:
            return str(self.r_type)
        return RELOC_TYPE_NAMES.get(name, name)

    def serialize(self):
        return {
            'r_address': self.r_address,
            'r_symbolnum': self.r_symbolnum,
            'r_pcrel': self.r_pcrel,
            'r_length': self.r_length,
            'r_extern': self.r_extern,
            'r_type': self.r_type,
            'scattered': self.is_scattered()
        }

    def __repr__(self):
        return f'RelocationInfo(r_address={hex(self.r_address)}, r_bitfield={hex(self.r_bitfield)})'


class RelocationIterator:
    """
    `count` consecutive 8 byte relocation_info records starting at absolute file offset `offset`.

    Each iter() starts over from the first record.
    """

    RECORD_SIZE = relocation_info.size()

    def __init__(self, reader, offset: int, count: int, byte_order="little"):
        self.reader = reader
        self.offset = offset
        self.count = count
        self.byte_order = byte_order

    def __len__(self):
        return self.count

    def __iter__(self):
        for index in range(self.count):
            try:
                struct = self.reader.read_struct(self.offset + index * self.RECORD_SIZE, relocation_info,
                                                 self.byte_order)
            except (MachOException, OSError) as ex:
                sequence_stopped('relocations', index, ex)
                return
            log.debug_tm(struct)
            yield RelocationInfo.from_struct(struct)
