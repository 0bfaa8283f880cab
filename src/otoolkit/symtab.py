#
#  otoolkit | otoolkit
#  symtab.py
#
#  LC_SYMTAB and the nlist records it points at, including stab classification (<mach-o/nlist.h>, <mach-o/stab.h>)
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

from collections import namedtuple
from enum import Enum
from typing import Optional

from lib0tk.log import log
from otoolkit.base import LcVariant
from otoolkit.exceptions import MachOException, MalformedMachOException
from otoolkit.primitives import LcStr, Hex
from otoolkit.util import sequence_stopped
from otoolkit_macho import (symtab_command, nlist, STAB, N_STAB, N_PEXT, N_TYPE, N_EXT, N_UNDF, N_ABS, N_SECT,
                            N_PBUD, N_INDR)


class StabType(Enum):
    GLOBAL_SYMBOL = STAB.N_GSYM
    PROCEDURE_NAME = STAB.N_FNAME
    PROCEDURE = STAB.N_FUN
    STATIC_SYMBOL = STAB.N_STSYM
    LOCAL_COMMON = STAB.N_LCSYM
    BEGIN_SECTION = STAB.N_BNSYM
    AST_FILE_PATH = STAB.N_AST
    OPT = STAB.N_OPT
    REGISTER_SYMBOL = STAB.N_RSYM
    SOURCE_LINE = STAB.N_SLINE
    END_SECTION = STAB.N_ENSYM
    STRUCTURE_ELT = STAB.N_SSYM
    SOURCE_FILE_NAME = STAB.N_SO
    OBJECT_FILE_NAME = STAB.N_OSO
    LOCAL_SYMBOL = STAB.N_LSYM
    INCLUDE_FILE_BEGINNING = STAB.N_BINCL
    INCLUDED_FILE_NAME = STAB.N_SOL
    COMPILER_PARAMETERS = STAB.N_PARAMS
    COMPILER_VERSION = STAB.N_VERSION
    COMPILER_OLEVEL = STAB.N_OLEVEL
    PARAMETER = STAB.N_PSYM
    INCLUDE_FILE_END = STAB.N_EINCL
    ALTERNATE_ENTRY = STAB.N_ENTRY
    LEFT_BRACKET = STAB.N_LBRAC
    DELETED_INCLUDE_NAME = STAB.N_EXCL
    RIGHT_BRACKET = STAB.N_RBRAC
    BEGIN_COMMON = STAB.N_BCOMM
    END_COMMON = STAB.N_ECOMM
    END_COMMON_LOCAL_NAME = STAB.N_ECOML
    LENGTH = STAB.N_LENG

    @staticmethod
    def from_raw(raw: int) -> Optional['StabType']:
        if raw & N_STAB == 0:
            return None
        try:
            return StabType(raw)
        except ValueError:
            return None

    def options(self) -> 'SymbolOptions':
        return STAB_OPTIONS[self]


class SymbolKind(Enum):
    UNDEFINED = N_UNDF
    ABSOLUTE = N_ABS
    SECTION = N_SECT
    PREBOUND = N_PBUD
    INDIRECT = N_INDR


class NameOption(Enum):
    NONE = 0
    UNKNOWN = 1
    SOME = 2
    RAW = 3


class SectOption(Enum):
    NONE = 0
    UNKNOWN = 1
    SOME = 2
    ZERO = 3
    RAW = 4


class DescOption(Enum):
    NONE = 0
    UNKNOWN = 1
    GLOBAL_SYMBOL_TYPE = 2
    STATIC_SYMBOL_TYPE = 3
    LOCAL_COMMON_SYMBOL_TYPE = 4
    LINE_NUMBER = 5
    REGISTER_TYPE = 6
    STRUCTURE_ELT_TYPE = 7
    SYMBOL_TYPE = 8
    PARAMETER_TYPE = 9
    NESTING_LEVEL = 10
    RAW = 11


class ValueOption(Enum):
    NONE = 0
    UNKNOWN = 1
    ADDRESS = 2
    REGISTER = 3
    STRUCT_OFFSET = 4
    LAST_MOD_TIME = 5
    OFFSET = 6
    SUM = 7
    LENGTH = 8
    # n_value is a string table index naming the aliased symbol
    INDIRECT = 9
    RAW = 10


# Which of name / n_sect / n_desc / n_value carry meaning for a symbol, and how to read them
SymbolOptions = namedtuple('SymbolOptions', ['n_name', 'n_sect', 'n_desc', 'n_value'])

_N, _S, _D, _V = NameOption, SectOption, DescOption, ValueOption

STAB_OPTIONS = {
    StabType.GLOBAL_SYMBOL: SymbolOptions(_N.SOME, _S.NONE, _D.GLOBAL_SYMBOL_TYPE, _V.NONE),
    StabType.PROCEDURE_NAME: SymbolOptions(_N.SOME, _S.NONE, _D.NONE, _V.NONE),
    StabType.PROCEDURE: SymbolOptions(_N.SOME, _S.SOME, _D.LINE_NUMBER, _V.ADDRESS),
    StabType.STATIC_SYMBOL: SymbolOptions(_N.SOME, _S.SOME, _D.STATIC_SYMBOL_TYPE, _V.ADDRESS),
    StabType.LOCAL_COMMON: SymbolOptions(_N.SOME, _S.SOME, _D.LOCAL_COMMON_SYMBOL_TYPE, _V.ADDRESS),
    StabType.BEGIN_SECTION: SymbolOptions(_N.NONE, _S.SOME, _D.NONE, _V.ADDRESS),
    StabType.AST_FILE_PATH: SymbolOptions(_N.SOME, _S.NONE, _D.NONE, _V.NONE),
    StabType.OPT: SymbolOptions(_N.UNKNOWN, _S.UNKNOWN, _D.UNKNOWN, _V.UNKNOWN),
    StabType.REGISTER_SYMBOL: SymbolOptions(_N.SOME, _S.NONE, _D.REGISTER_TYPE, _V.REGISTER),
    StabType.SOURCE_LINE: SymbolOptions(_N.NONE, _S.SOME, _D.LINE_NUMBER, _V.ADDRESS),
    StabType.END_SECTION: SymbolOptions(_N.NONE, _S.SOME, _D.NONE, _V.ADDRESS),
    StabType.STRUCTURE_ELT: SymbolOptions(_N.SOME, _S.NONE, _D.STRUCTURE_ELT_TYPE, _V.STRUCT_OFFSET),
    StabType.SOURCE_FILE_NAME: SymbolOptions(_N.SOME, _S.SOME, _D.NONE, _V.ADDRESS),
    StabType.OBJECT_FILE_NAME: SymbolOptions(_N.SOME, _S.ZERO, _D.NONE, _V.LAST_MOD_TIME),
    StabType.LOCAL_SYMBOL: SymbolOptions(_N.SOME, _S.NONE, _D.SYMBOL_TYPE, _V.OFFSET),
    StabType.INCLUDE_FILE_BEGINNING: SymbolOptions(_N.SOME, _S.NONE, _D.NONE, _V.SUM),
    StabType.INCLUDED_FILE_NAME: SymbolOptions(_N.SOME, _S.SOME, _D.NONE, _V.ADDRESS),
    StabType.COMPILER_PARAMETERS: SymbolOptions(_N.SOME, _S.NONE, _D.NONE, _V.NONE),
    StabType.COMPILER_VERSION: SymbolOptions(_N.SOME, _S.NONE, _D.NONE, _V.NONE),
    StabType.COMPILER_OLEVEL: SymbolOptions(_N.SOME, _S.NONE, _D.NONE, _V.NONE),
    StabType.PARAMETER: SymbolOptions(_N.SOME, _S.NONE, _D.PARAMETER_TYPE, _V.OFFSET),
    StabType.INCLUDE_FILE_END: SymbolOptions(_N.SOME, _S.NONE, _D.NONE, _V.NONE),
    StabType.ALTERNATE_ENTRY: SymbolOptions(_N.SOME, _S.SOME, _D.LINE_NUMBER, _V.ADDRESS),
    StabType.LEFT_BRACKET: SymbolOptions(_N.NONE, _S.NONE, _D.NESTING_LEVEL, _V.ADDRESS),
    StabType.DELETED_INCLUDE_NAME: SymbolOptions(_N.SOME, _S.NONE, _D.NONE, _V.SUM),
    StabType.RIGHT_BRACKET: SymbolOptions(_N.NONE, _S.NONE, _D.NESTING_LEVEL, _V.ADDRESS),
    StabType.BEGIN_COMMON: SymbolOptions(_N.SOME, _S.NONE, _D.NONE, _V.NONE),
    StabType.END_COMMON: SymbolOptions(_N.SOME, _S.SOME, _D.NONE, _V.NONE),
    StabType.END_COMMON_LOCAL_NAME: SymbolOptions(_N.NONE, _S.SOME, _D.NONE, _V.ADDRESS),
    StabType.LENGTH: SymbolOptions(_N.NONE, _S.NONE, _D.NONE, _V.LENGTH),
}

SYMBOL_KIND_OPTIONS = {
    SymbolKind.UNDEFINED: SymbolOptions(_N.SOME, _S.NONE, _D.RAW, _V.RAW),
    SymbolKind.ABSOLUTE: SymbolOptions(_N.SOME, _S.NONE, _D.RAW, _V.RAW),
    SymbolKind.SECTION: SymbolOptions(_N.SOME, _S.SOME, _D.RAW, _V.ADDRESS),
    SymbolKind.PREBOUND: SymbolOptions(_N.SOME, _S.NONE, _D.RAW, _V.RAW),
    SymbolKind.INDIRECT: SymbolOptions(_N.SOME, _S.NONE, _D.RAW, _V.INDIRECT),
}

RAW_OPTIONS = SymbolOptions(_N.RAW, _S.RAW, _D.RAW, _V.RAW)


class Ntype(int):
    """
    The n_type byte. If any N_STAB bit is set the whole byte is a stab code, otherwise:

        N_PEXT (0x10) private external, N_TYPE (0x0e) symbol type, N_EXT (0x01) external
    """

    def is_stab(self) -> bool:
        return self & N_STAB != 0

    def is_private_external(self) -> bool:
        return self & N_PEXT != 0

    def is_external(self) -> bool:
        return self & N_EXT != 0

    def is_undefined(self) -> bool:
        return self & N_TYPE == N_UNDF

    def is_absolute(self) -> bool:
        return self & N_TYPE == N_ABS

    def is_defined_in_n_sect(self) -> bool:
        return self & N_TYPE == N_SECT

    def is_prebound(self) -> bool:
        return self & N_TYPE == N_PBUD

    def is_indirect(self) -> bool:
        return self & N_TYPE == N_INDR

    def stab_type(self) -> Optional[StabType]:
        return StabType.from_raw(self)

    def symbol_kind(self) -> Optional[SymbolKind]:
        if self.is_stab():
            return None
        try:
            return SymbolKind(self & N_TYPE)
        except ValueError:
            return None

    def options(self) -> SymbolOptions:
        stab = self.stab_type()
        if stab is not None:
            return stab.options()
        kind = self.symbol_kind()
        if kind is not None:
            return SYMBOL_KIND_OPTIONS[kind]
        return RAW_OPTIONS

    def __repr__(self):
        return f'Ntype({hex(self)})'


class LcSymtab(LcVariant):
    kind = 'Symtab'
    STRUCT = symtab_command

    def post_init(self):
        self.is_64 = self.context.is_64

    @property
    def nlist_size(self):
        return nlist.size(ptr_size=self.context.ptr_size)

    def string_at(self, strx: int) -> LcStr:
        """ Deferred string at index `strx` of this image's string table """
        return LcStr(self.reader, self.file_offset + self.stroff + strx)

    def nlist_iterator(self):
        """
        Yield each of the `nsyms` nlist records. Restartable; every call reads the table again.
        """
        base = self.file_offset + self.symoff
        record_size = self.nlist_size
        for index in range(self.nsyms):
            try:
                struct = self.reader.read_struct(base + index * record_size, nlist, self.context.byte_order,
                                                 self.context.ptr_size)
            except (MachOException, OSError) as ex:
                sequence_stopped('symbols', index, ex)
                return
            yield Nlist(self, struct)


class Nlist:
    def __init__(self, symtab: LcSymtab, struct: nlist):
        self.symtab = symtab
        self.off = struct.off
        self.n_strx = struct.n_strx
        self.n_type = Ntype(struct.n_type)
        self.n_sect = struct.n_sect
        self.n_desc = struct.n_desc
        self.n_value = struct.n_value

        # n_strx == 0 is "no name", which is not the same thing as an empty one
        self.name: Optional[LcStr] = symtab.string_at(self.n_strx) if self.n_strx > 0 else None

    def options(self) -> SymbolOptions:
        return self.n_type.options()

    @property
    def library_ordinal(self) -> int:
        """ GET_LIBRARY_ORDINAL(n_desc); only meaningful for undefined symbols in two-level namespace images """
        return (self.n_desc >> 8) & 0xff

    def indirect_name(self) -> Optional[LcStr]:
        if not self.n_type.is_indirect() or self.n_type.is_stab():
            return None
        if self.n_value >= self.symtab.strsize:
            raise MalformedMachOException(f'Indirect symbol string index {hex(self.n_value)} is outside the '
                                          f'string table')
        return self.symtab.string_at(self.n_value)

    @property
    def type_name(self) -> str:
        stab = self.n_type.stab_type()
        if stab is not None:
            return stab.name
        if self.n_type.is_stab():
            return f'STAB({hex(self.n_type)})'
        kind = self.n_type.symbol_kind()
        return kind.name if kind is not None else f'UNKNOWN({hex(self.n_type)})'

    def serialize(self):
        options = self.options()
        out = {
            'name': self.name.serialize() if self.name is not None else None,
            'type': self.type_name,
            'external': self.n_type.is_external(),
            'private_external': self.n_type.is_private_external(),
            'n_strx': self.n_strx,
            'n_type': int(self.n_type),
            'n_sect': self.n_sect,
            'n_desc': self.n_desc,
        }
        if options.n_value == ValueOption.ADDRESS:
            out['n_value'] = str(Hex(self.n_value, self.symtab.context.ptr_size))
        else:
            out['n_value'] = self.n_value
        if options.n_value == ValueOption.INDIRECT:
            try:
                indirect = self.indirect_name()
                out['indirect'] = indirect.serialize() if indirect is not None else None
            except MalformedMachOException as ex:
                log.warn(str(ex))
                out['indirect'] = None
        return out

    def __str__(self):
        return f'Nlist({self.name!r}, {self.type_name}, n_sect={self.n_sect}, n_value={hex(self.n_value)})'
