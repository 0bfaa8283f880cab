#
#  otoolkit | otoolkit
#  segment.py
#
#  LC_SEGMENT / LC_SEGMENT_64 and the section records that follow them
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

from io import BytesIO

from lib0tk.log import log
from otoolkit.base import LcVariant, serialize_value, enum_or_int
from otoolkit.exceptions import MachOException, MalformedMachOException
from otoolkit.primitives import Hex, Str16, VmProt
from otoolkit.reloc import RelocationIterator
from otoolkit.util import sequence_stopped, opts
from otoolkit_macho import (LOAD_COMMAND, segment_command, segment_command_64, section, section_64, SectionType,
                            SectionAttributes, S_FLAGS_MASKS, ZEROFILL_SECTION_TYPES)


class LcSegment(LcVariant):
    """
    Segment command, either width. Addresses and sizes are plain python ints whatever the source width.
    """

    kind = 'Segment'
    STRUCT = segment_command
    STRUCT_64 = segment_command_64
    WIDE_COMMANDS = (LOAD_COMMAND.SEGMENT_64,)
    FIELD_TYPES = {
        'segname': Str16,
        'vmaddr': Hex,
        'vmsize': Hex,
        'maxprot': VmProt,
        'initprot': VmProt,
        'flags': lambda value: Hex(value, 4)
    }

    def post_init(self):
        self.is_64 = self.context.is_64
        # section table follows the fixed part of the command directly
        self.sections_offset = self.command_offset + self.payload_size

    @property
    def section_record_size(self):
        return section_64.size() if self.is_64 else section.size()

    def sections_iterator(self):
        """
        Yield each of the `nsects` Section records. Restartable; every call reads the table again.
        """
        struct_type = section_64 if self.is_64 else section
        record_size = self.section_record_size
        for index in range(self.nsects):
            off = self.sections_offset + index * record_size
            try:
                if off + record_size > self.end:
                    raise MalformedMachOException(f'Section {index} of {self.segname} runs past its command')
                struct = self.reader.read_struct(off, struct_type, self.context.byte_order, self.context.ptr_size)
            except (MachOException, OSError) as ex:
                sequence_stopped(f'sections of {self.segname}', index, ex)
                return
            yield Section(self, struct)

    def serialize(self):
        out = super().serialize()
        out['sections'] = [sect.serialize() for sect in self.sections_iterator()]
        return out


class Section:
    """
    One section record, either width. `reserved3` only exists in the 64 bit layout and is None otherwise.
    """

    def __init__(self, segment: LcSegment, struct):
        self.reader = segment.reader
        self.file_offset = segment.file_offset
        self.context = segment.context
        self.off = struct.off

        self.sectname = Str16(struct.sectname)
        self.segname = Str16(struct.segname)
        self.addr = Hex(struct.addr)
        self.size = struct.size
        self.offset = struct.offset
        self.align = struct.align
        self.reloff = struct.reloff
        self.nreloc = struct.nreloc
        self.flags = Hex(struct.flags, 4)
        self.reserved1 = struct.reserved1
        self.reserved2 = struct.reserved2
        self.reserved3 = struct.reserved3 if self.context.is_64 else None

    @property
    def section_type(self):
        return enum_or_int(SectionType)(self.flags & S_FLAGS_MASKS.SECTION_TYPE)

    @property
    def attributes(self) -> int:
        return self.flags & S_FLAGS_MASKS.SECTION_ATTRIBUTES

    def attribute_names(self):
        return [attr.name for attr in SectionAttributes if self.attributes & attr]

    @property
    def is_zerofill(self) -> bool:
        return self.section_type in ZEROFILL_SECTION_TYPES

    def read_data_to(self, sink) -> int:
        """
        Stream this section's bytes from the file into `sink`.

        Zero-fill sections (S_ZEROFILL, S_GB_ZEROFILL, S_THREAD_LOCAL_ZEROFILL) have no file content. For them
        nothing is written and 0 is returned, whatever `size` says. A short read of any other section raises
        MalformedMachOException, so 0 from a zero-fill section is not an I/O shortfall.

        :param sink: Anything with a .write(bytes)
        :return: number of bytes written; `size`, or 0 for zero-fill sections
        """
        if self.is_zerofill:
            log.debug(f'{self.segname},{self.sectname} is zero-fill; nothing to read')
            return 0
        try:
            return self.reader.copy_to(self.file_offset + self.offset, self.size, sink, opts.READ_CHUNK_SIZE)
        except (MachOException, OSError) as ex:
            raise MalformedMachOException(f'Could not read {self.segname},{self.sectname}') from ex

    def read_data(self) -> bytes:
        buf = BytesIO()
        self.read_data_to(buf)
        return buf.getvalue()

    def relocations_iterator(self) -> RelocationIterator:
        return RelocationIterator(self.reader, self.file_offset + self.reloff, self.nreloc, self.context.byte_order)

    def serialize(self):
        return {
            'sectname': self.sectname,
            'segname': self.segname,
            'addr': serialize_value(self.addr),
            'size': self.size,
            'offset': self.offset,
            'align': self.align,
            'reloff': self.reloff,
            'nreloc': self.nreloc,
            'flags': serialize_value(self.flags),
            'type': serialize_value(self.section_type),
            'attributes': self.attribute_names(),
            'reserved1': self.reserved1,
            'reserved2': self.reserved2,
            'reserved3': self.reserved3
        }

    def __str__(self):
        return f'Section({self.segname},{self.sectname} addr={self.addr} size={hex(self.size)})'
