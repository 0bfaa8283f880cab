from otoolkit.loader import parse, parse_file, ObjectType
from otoolkit.magic import Magic, ObjectKind
from otoolkit.fat import FatObject, FatArch
from otoolkit.macho import MachObject, MachHeader
from otoolkit.load_commands import LoadCommand, LoadCommandIterator, LOAD_COMMAND_MAP
from otoolkit.segment import LcSegment, Section
from otoolkit.symtab import LcSymtab, Nlist, Ntype, StabType, SymbolKind, SymbolOptions
from otoolkit.reloc import RelocationInfo, RelocationIterator
from otoolkit.reader import SharedReader
from otoolkit.primitives import Endian, X64Context, LcStr, BitVec, Hex, Str16, Uuid, Version32, Version64, VmProt
from otoolkit.exceptions import MachOException, BadMagicException, BadBufferLengthException, MalformedMachOException
from otoolkit.util import OTOOLKIT_VERSION, ignore, opts, Table
