#
#  otoolkit | otoolkit
#  primitives.py
#
#  Small value wrappers shared by every decoded structure: width/endianness context, display-only integer wrappers
#    and the deferred string / byte vector handles.
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

import uuid
from enum import Enum

from lib0tk.log import log
from otoolkit.exceptions import MachOException
from otoolkit_macho import VM_PROT


class Endian(str, Enum):
    BIG = 'big'
    LITTLE = 'little'


class X64Context:
    """
    Byte order + width of one Mach-O image.

    Passed down explicitly to everything that decodes a dual width field (addresses, sizes, nlist values, ...)
    """

    def __init__(self, byte_order: str, is_64: bool):
        self.byte_order = byte_order
        self.is_64 = is_64

    @property
    def ptr_size(self):
        return 8 if self.is_64 else 4

    def __eq__(self, other):
        return isinstance(other, X64Context) and (self.byte_order, self.is_64) == (other.byte_order, other.is_64)

    def __repr__(self):
        return f'X64Context({self.byte_order}, {"64" if self.is_64 else "32"})'


class Hex(int):
    """ An int that displays as zero padded hex. `width` is the field size in bytes. """

    def __new__(cls, value, width=8):
        inst = super().__new__(cls, value)
        inst.width = width
        return inst

    def __str__(self):
        return f'0x{int(self):0{self.width * 2}x}'

    def __repr__(self):
        return str(self)

    def serialize(self):
        return str(self)


class Str16(str):
    """ Contents of a 16 byte, zero padded name field (segname, sectname) """

    def serialize(self):
        return str(self)


class Uuid:
    def __init__(self, raw: bytes):
        self.raw = bytes(raw)

    def __str__(self):
        return str(uuid.UUID(bytes=self.raw)).upper()

    def __repr__(self):
        return f'Uuid({self})'

    def __eq__(self, other):
        return isinstance(other, Uuid) and other.raw == self.raw

    def serialize(self):
        return str(self)


class Version32:
    """
    xxxx.yy.zz packed in 16/8/8 bits
    """

    def __init__(self, raw: int):
        self.raw = raw

    @property
    def x(self):
        return (self.raw >> 16) & 0xffff

    @property
    def y(self):
        return (self.raw >> 8) & 0xff

    @property
    def z(self):
        return self.raw & 0xff

    def __str__(self):
        return f'{self.x}.{self.y}.{self.z}'

    def __repr__(self):
        return f'Version32({self})'

    def __eq__(self, other):
        return isinstance(other, Version32) and other.raw == self.raw

    def serialize(self):
        return str(self)


class Version64:
    """
    a.b.c.d.e packed in 24/10/10/10/10 bits (LC_SOURCE_VERSION)
    """

    def __init__(self, raw: int):
        self.raw = raw

    @property
    def parts(self):
        return ((self.raw & 0xFFFFFF0000000000) >> 40,
                (self.raw & 0xFFC0000000) >> 30,
                (self.raw & 0x3FF00000) >> 20,
                (self.raw & 0xFFC00) >> 10,
                self.raw & 0x3FF)

    def __str__(self):
        return '.'.join(str(part) for part in self.parts)

    def __repr__(self):
        return f'Version64({self})'

    def __eq__(self, other):
        return isinstance(other, Version64) and other.raw == self.raw

    def serialize(self):
        return str(self)


class VmProt(int):
    def __str__(self):
        return ('r' if self & VM_PROT.READ else '-') + \
               ('w' if self & VM_PROT.WRITE else '-') + \
               ('x' if self & VM_PROT.EXECUTE else '-')

    def __repr__(self):
        return f'VmProt({self})'

    def serialize(self):
        return str(self)


class LcStr:
    """
    Deferred zero terminated string at an absolute file offset.

    Nothing is read until load_string() is called, and nothing is cached; every call re-reads through the reader.
    """

    def __init__(self, reader, file_offset: int):
        self.reader = reader
        self.file_offset = file_offset

    def load_string(self) -> str:
        return self.reader.read_cstr(self.file_offset)

    def _try_load(self):
        try:
            return self.load_string()
        except (MachOException, OSError) as ex:
            log.debug(f'Could not load string at {hex(self.file_offset)}: {ex}')
            return None

    def __str__(self):
        string = self._try_load()
        return string if string is not None else ''

    def __repr__(self):
        string = self._try_load()
        return repr(string) if string is not None else '<error>'

    def serialize(self):
        return self._try_load()


class BitVec:
    """
    Deferred run of `bytecount` bytes at an absolute file offset
    """

    def __init__(self, reader, file_offset: int, bytecount: int):
        self.reader = reader
        self.file_offset = file_offset
        self.bytecount = bytecount

    def load_bit_vector(self) -> bytes:
        return self.reader.read_bytes(self.file_offset, self.bytecount)

    def __repr__(self):
        return f'BitVec({hex(self.file_offset)}, {self.bytecount})'

    def serialize(self):
        try:
            return self.load_bit_vector().hex()
        except (MachOException, OSError) as ex:
            log.debug(f'Could not load bit vector at {hex(self.file_offset)}: {ex}')
            return None
