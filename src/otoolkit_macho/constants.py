#
#  otoolkit | otoolkit_macho
#  constants.py
#
#  Values from <mach-o/loader.h>, <mach-o/fat.h>, <mach-o/nlist.h>, <mach-o/stab.h>, <mach-o/reloc.h>
#    and <mach/machine.h>
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

from enum import IntEnum

MH_MAGIC = 0xFEEDFACE
MH_CIGAM = 0xCEFAEDFE
MH_MAGIC_64 = 0xFEEDFACF
MH_CIGAM_64 = 0xCFFAEDFE
FAT_MAGIC = 0xCAFEBABE
FAT_CIGAM = 0xBEBAFECA

BYTES_PER_MAGIC = 4
BYTES_PER_FAT_HEADER = 8
BYTES_PER_FAT_ARCH = 20
BYTES_PER_LOAD_COMMAND = 8


class MH_FLAGS(IntEnum):
    NOUNDEFS = 0x1
    INCRLINK = 0x2
    DYLDLINK = 0x4
    BINDATLOAD = 0x8
    PREBOUND = 0x10
    SPLIT_SEGS = 0x20
    LAZY_INIT = 0x40
    TWOLEVEL = 0x80
    FORCE_FLAT = 0x100
    NOMULTIDEFS = 0x200
    NOFIXPREBINDING = 0x400
    PREBINDABLE = 0x800
    ALLMODSBOUND = 0x1000
    SUBSECTIONS_VIA_SYMBOLS = 0x2000
    CANONICAL = 0x4000
    WEAK_DEFINES = 0x8000
    BINDS_TO_WEAK = 0x10000
    ALLOW_STACK_EXECUTION = 0x20000
    ROOT_SAFE = 0x40000
    SETUID_SAFE = 0x80000
    NO_REEXPORTED_DYLIBS = 0x100000
    PIE = 0x200000
    DEAD_STRIPPABLE_DYLIB = 0x400000
    HAS_TLV_DESCRIPTORS = 0x800000
    NO_HEAP_EXECUTION = 0x1000000
    APP_EXTENSION_SAFE = 0x02000000
    NLIST_OUTOFSYNC_WITH_DYLDINFO = 0x04000000
    SIM_SUPPORT = 0x08000000
    DYLIB_IN_CACHE = 0x80000000


class MH_FILETYPE(IntEnum):
    OBJECT = 0x1
    EXECUTE = 0x2
    FVMLIB = 0x3
    CORE = 0x4
    PRELOAD = 0x5
    DYLIB = 0x6
    DYLINKER = 0x7
    BUNDLE = 0x8
    DYLIB_STUB = 0x9
    DSYM = 0xA
    KEXT_BUNDLE = 0xB
    FILESET = 0xC


LC_REQ_DYLD = 0x80000000


class LOAD_COMMAND(IntEnum):
    SEGMENT = 0x1
    SYMTAB = 0x2
    SYMSEG = 0x3
    THREAD = 0x4
    UNIXTHREAD = 0x5
    LOADFVMLIB = 0x6
    IDFVMLIB = 0x7
    IDENT = 0x8
    FVMFILE = 0x9
    PREPAGE = 0xA
    DYSYMTAB = 0xB
    LOAD_DYLIB = 0xC
    ID_DYLIB = 0xD
    LOAD_DYLINKER = 0xE
    ID_DYLINKER = 0xF
    PREBOUND_DYLIB = 0x10
    ROUTINES = 0x11
    SUB_FRAMEWORK = 0x12
    SUB_UMBRELLA = 0x13
    SUB_CLIENT = 0x14
    SUB_LIBRARY = 0x15
    TWOLEVEL_HINTS = 0x16
    PREBIND_CKSUM = 0x17
    LOAD_WEAK_DYLIB = 0x18 | LC_REQ_DYLD
    SEGMENT_64 = 0x19
    ROUTINES_64 = 0x1a
    UUID = 0x1b
    RPATH = 0x1C | LC_REQ_DYLD
    CODE_SIGNATURE = 0x1D
    SEGMENT_SPLIT_INFO = 0x1E
    REEXPORT_DYLIB = 0x1F | LC_REQ_DYLD
    LAZY_LOAD_DYLIB = 0x20
    ENCRYPTION_INFO = 0x21
    DYLD_INFO = 0x22
    DYLD_INFO_ONLY = 0x22 | LC_REQ_DYLD
    LOAD_UPWARD_DYLIB = 0x23 | LC_REQ_DYLD
    VERSION_MIN_MACOSX = 0x24
    VERSION_MIN_IPHONEOS = 0x25
    FUNCTION_STARTS = 0x26
    DYLD_ENVIRONMENT = 0x27
    MAIN = 0x28 | LC_REQ_DYLD
    DATA_IN_CODE = 0x29
    SOURCE_VERSION = 0x2A
    DYLIB_CODE_SIGN_DRS = 0x2B
    ENCRYPTION_INFO_64 = 0x2C
    LINKER_OPTION = 0x2D
    LINKER_OPTIMIZATION_HINT = 0x2E
    VERSION_MIN_TVOS = 0x2F
    VERSION_MIN_WATCHOS = 0x30
    NOTE = 0x31
    BUILD_VERSION = 0x32
    DYLD_EXPORTS_TRIE = 0x33 | LC_REQ_DYLD
    DYLD_CHAINED_FIXUPS = 0x34 | LC_REQ_DYLD


def load_command_name(cmd):
    try:
        return 'LC_' + LOAD_COMMAND(cmd).name
    except ValueError:
        return f'LC_UNKNOWN({hex(cmd)})'


# cpu_type_t / cpu_subtype_t

CPU_ARCH_MASK = 0xff000000
CPU_ARCH_ABI64 = 0x01000000
CPU_ARCH_ABI64_32 = 0x02000000

CPU_SUBTYPE_MASK = 0xff000000
CPU_SUBTYPE_LIB64 = 0x80000000
CPU_SUBTYPE_PTRAUTH_ABI = 0x80000000


class CPUType(IntEnum):
    ANY = -1
    VAX = 1
    MC680x0 = 6
    X86 = 7
    X86_64 = X86 | CPU_ARCH_ABI64
    MC98000 = 10
    HPPA = 11
    ARM = 12
    ARM64 = ARM | CPU_ARCH_ABI64
    ARM64_32 = ARM | CPU_ARCH_ABI64_32
    MC88000 = 13
    SPARC = 14
    I860 = 15
    POWERPC = 18
    POWERPC64 = POWERPC | CPU_ARCH_ABI64


class CPUSubTypeX86(IntEnum):
    ALL = 3
    ARCH1 = 4


class CPUSubTypeX86_64(IntEnum):
    ALL = 3
    H = 8


class CPUSubTypeARM(IntEnum):
    ALL = 0
    V4T = 5
    V6 = 6
    V5TEJ = 7
    XSCALE = 8
    V7 = 9
    V7F = 10
    V7S = 11
    V7K = 12
    V8 = 13
    V6M = 14
    V7M = 15
    V7EM = 16


class CPUSubTypeARM64(IntEnum):
    ALL = 0
    V8 = 1
    ARM64E = 2


class CPUSubTypeARM64_32(IntEnum):
    ALL = 0
    V8 = 1


class CPUSubTypePowerPC(IntEnum):
    ALL = 0
    _601 = 1
    _602 = 2
    _603 = 3
    _603e = 4
    _603ev = 5
    _604 = 6
    _604e = 7
    _620 = 8
    _750 = 9
    _7400 = 10
    _7450 = 11
    _970 = 100


CPU_SUBTYPES = {
    CPUType.X86: CPUSubTypeX86,
    CPUType.X86_64: CPUSubTypeX86_64,
    CPUType.POWERPC: CPUSubTypePowerPC,
    CPUType.POWERPC64: CPUSubTypePowerPC,
    CPUType.ARM: CPUSubTypeARM,
    CPUType.ARM64: CPUSubTypeARM64,
    CPUType.ARM64_32: CPUSubTypeARM64_32,
}

# (cputype, masked cpusubtype) -> the arch name used by otool/lipo
CPU_NAMES = {
    (CPUType.X86, CPUSubTypeX86.ALL): 'i386',
    (CPUType.X86_64, CPUSubTypeX86_64.ALL): 'x86_64',
    (CPUType.X86_64, CPUSubTypeX86_64.H): 'x86_64h',
    (CPUType.ARM, CPUSubTypeARM.V6): 'armv6',
    (CPUType.ARM, CPUSubTypeARM.V7): 'armv7',
    (CPUType.ARM, CPUSubTypeARM.V7S): 'armv7s',
    (CPUType.ARM, CPUSubTypeARM.V7K): 'armv7k',
    (CPUType.ARM64, CPUSubTypeARM64.ALL): 'arm64',
    (CPUType.ARM64, CPUSubTypeARM64.V8): 'arm64v8',
    (CPUType.ARM64, CPUSubTypeARM64.ARM64E): 'arm64e',
    (CPUType.ARM64_32, CPUSubTypeARM64_32.V8): 'arm64_32',
    (CPUType.POWERPC, CPUSubTypePowerPC.ALL): 'ppc',
    (CPUType.POWERPC64, CPUSubTypePowerPC.ALL): 'ppc64',
}


# vm_prot_t

class VM_PROT(IntEnum):
    NONE = 0x0
    READ = 0x1
    WRITE = 0x2
    EXECUTE = 0x4


# segment_command flags

class SG_FLAGS(IntEnum):
    HIGHVM = 0x1
    FVMLIB = 0x2
    NORELOC = 0x4
    PROTECTED_VERSION_1 = 0x8
    READ_ONLY = 0x10


# section flags

class S_FLAGS_MASKS(IntEnum):
    SECTION_TYPE = 0x000000ff
    SECTION_ATTRIBUTES = 0xffffff00
    SECTION_ATTRIBUTES_USR = 0xff000000
    SECTION_ATTRIBUTES_SYS = 0x00ffff00


class SectionType(IntEnum):
    S_REGULAR = 0x00
    S_ZEROFILL = 0x01
    S_CSTRING_LITERALS = 0x02
    S_4BYTE_LITERALS = 0x03
    S_8BYTE_LITERALS = 0x04
    S_LITERAL_POINTERS = 0x05
    S_NON_LAZY_SYMBOL_POINTERS = 0x06
    S_LAZY_SYMBOL_POINTERS = 0x07
    S_SYMBOL_STUBS = 0x08  # stub size in reserved2
    S_MOD_INIT_FUNC_POINTERS = 0x09
    S_MOD_TERM_FUNC_POINTERS = 0x0A
    S_COALESCED = 0x0B
    S_GB_ZEROFILL = 0x0C
    S_INTERPOSING = 0x0D
    S_16BYTE_LITERALS = 0x0E
    S_DTRACE_DOF = 0x0F
    S_LAZY_DYLIB_SYMBOL_POINTERS = 0x10
    S_THREAD_LOCAL_REGULAR = 0x11
    S_THREAD_LOCAL_ZEROFILL = 0x12
    S_THREAD_LOCAL_VARIABLES = 0x13
    S_THREAD_LOCAL_VARIABLE_POINTERS = 0x14
    S_THREAD_LOCAL_INIT_FUNCTION_POINTERS = 0x15
    S_INIT_FUNC_OFFSETS = 0x16


# Sections of these types occupy no bytes in the file
ZEROFILL_SECTION_TYPES = (SectionType.S_ZEROFILL, SectionType.S_GB_ZEROFILL, SectionType.S_THREAD_LOCAL_ZEROFILL)


class SectionAttributes(IntEnum):
    S_ATTR_PURE_INSTRUCTIONS = 0x80000000
    S_ATTR_NO_TOC = 0x40000000
    S_ATTR_STRIP_STATIC_SYMS = 0x20000000
    S_ATTR_NO_DEAD_STRIP = 0x10000000
    S_ATTR_LIVE_SUPPORT = 0x08000000
    S_ATTR_SELF_MODIFYING_CODE = 0x04000000
    S_ATTR_DEBUG = 0x02000000
    S_ATTR_SOME_INSTRUCTIONS = 0x00000400
    S_ATTR_EXT_RELOC = 0x00000200
    S_ATTR_LOC_RELOC = 0x00000100


# nlist

N_STAB = 0xe0
N_PEXT = 0x10
N_TYPE = 0x0e
N_EXT = 0x01

N_UNDF = 0x0
N_ABS = 0x2
N_SECT = 0xe
N_PBUD = 0xc
N_INDR = 0xa

NO_SECT = 0
MAX_SECT = 255

REFERENCE_TYPE = 0xf
REFERENCED_DYNAMICALLY = 0x10
N_NO_DEAD_STRIP = 0x20
N_DESC_DISCARDED = 0x20
N_WEAK_REF = 0x40
N_WEAK_DEF = 0x80

SELF_LIBRARY_ORDINAL = 0x0
MAX_LIBRARY_ORDINAL = 0xfd
DYNAMIC_LOOKUP_ORDINAL = 0xfe
EXECUTABLE_ORDINAL = 0xff


class STAB(IntEnum):
    """ <mach-o/stab.h>; comments give the conventional `name,,n_sect,n_desc,n_value` use """
    N_GSYM = 0x20  # global symbol: name,,NO_SECT,type,0
    N_FNAME = 0x22  # procedure name (f77 kludge): name,,NO_SECT,0,0
    N_FUN = 0x24  # procedure: name,,n_sect,linenumber,address
    N_STSYM = 0x26  # static symbol: name,,n_sect,type,address
    N_LCSYM = 0x28  # .lcomm symbol: name,,n_sect,type,address
    N_BNSYM = 0x2e  # begin nsect sym: 0,,n_sect,0,address
    N_AST = 0x32  # AST file path: name,,NO_SECT,0,0
    N_OPT = 0x3c  # emitted with gcc2_compiled and in gcc source
    N_RSYM = 0x40  # register sym: name,,NO_SECT,type,register
    N_SLINE = 0x44  # src line: 0,,n_sect,linenumber,address
    N_ENSYM = 0x4e  # end nsect sym: 0,,n_sect,0,address
    N_SSYM = 0x60  # structure elt: name,,NO_SECT,type,struct_offset
    N_SO = 0x64  # source file name: name,,n_sect,0,address
    N_OSO = 0x66  # object file name: name,,0,0,st_mtime
    N_LSYM = 0x80  # local sym: name,,NO_SECT,type,offset
    N_BINCL = 0x82  # include file beginning: name,,NO_SECT,0,sum
    N_SOL = 0x84  # #included file name: name,,n_sect,0,address
    N_PARAMS = 0x86  # compiler parameters: name,,NO_SECT,0,0
    N_VERSION = 0x88  # compiler version: name,,NO_SECT,0,0
    N_OLEVEL = 0x8A  # compiler -O level: name,,NO_SECT,0,0
    N_PSYM = 0xa0  # parameter: name,,NO_SECT,type,offset
    N_EINCL = 0xa2  # include file end: name,,NO_SECT,0,0
    N_ENTRY = 0xa4  # alternate entry: name,,n_sect,linenumber,address
    N_LBRAC = 0xc0  # left bracket: 0,,NO_SECT,nesting level,address
    N_EXCL = 0xc2  # deleted include file: name,,NO_SECT,0,sum
    N_RBRAC = 0xe0  # right bracket: 0,,NO_SECT,nesting level,address
    N_BCOMM = 0xe2  # begin common: name,,NO_SECT,0,0
    N_ECOMM = 0xe4  # end common: name,,n_sect,0,0
    N_ECOML = 0xe8  # end common (local name): 0,,n_sect,0,address
    N_LENG = 0xfe  # second stab entry with length information


# relocation_info

R_ABS = 0
R_SCATTERED = 0x80000000

RELOC_LENGTHS = {
    0: 'byte',
    1: 'word',
    2: 'long',
    3: 'quad'
}


class GENERIC_RELOC(IntEnum):
    VANILLA = 0
    PAIR = 1
    SECTDIFF = 2
    PB_LA_PTR = 3
    LOCAL_SECTDIFF = 4
    TLV = 5


class X86_64_RELOC(IntEnum):
    UNSIGNED = 0
    SIGNED = 1
    BRANCH = 2
    GOT_LOAD = 3
    GOT = 4
    SUBTRACTOR = 5
    SIGNED_1 = 6
    SIGNED_2 = 7
    SIGNED_4 = 8
    TLV = 9


class ARM_RELOC(IntEnum):
    VANILLA = 0
    PAIR = 1
    SECTDIFF = 2
    LOCAL_SECTDIFF = 3
    PB_LA_PTR = 4
    BR24 = 5
    THUMB_RELOC_BR22 = 6
    THUMB_32BIT_BRANCH = 7
    HALF = 8
    HALF_SECTDIFF = 9


class ARM64_RELOC(IntEnum):
    UNSIGNED = 0
    SUBTRACTOR = 1
    BRANCH26 = 2
    PAGE21 = 3
    PAGEOFF12 = 4
    GOT_LOAD_PAGE21 = 5
    GOT_LOAD_PAGEOFF12 = 6
    POINTER_TO_GOT = 7
    TLVP_LOAD_PAGE21 = 8
    TLVP_LOAD_PAGEOFF12 = 9
    ADDEND = 10


RELOC_TYPES = {
    CPUType.X86: GENERIC_RELOC,
    CPUType.X86_64: X86_64_RELOC,
    CPUType.ARM: ARM_RELOC,
    CPUType.ARM64: ARM64_RELOC,
    CPUType.ARM64_32: ARM64_RELOC,
}

# <mach-o/arm/reloc.h> names that don't follow the ARM_RELOC_<member> pattern
RELOC_TYPE_NAMES = {
    'ARM_RELOC_THUMB_RELOC_BR22': 'ARM_THUMB_RELOC_BR22',
    'ARM_RELOC_THUMB_32BIT_BRANCH': 'ARM_THUMB_32BIT_BRANCH',
}


# build_version_command

class PlatformType(IntEnum):
    MACOS = 1
    IOS = 2
    TVOS = 3
    WATCHOS = 4
    BRIDGEOS = 5
    MACCATALYST = 6
    IOSSIMULATOR = 7
    TVOSSIMULATOR = 8
    WATCHOSSIMULATOR = 9
    DRIVERKIT = 10


class ToolType(IntEnum):
    CLANG = 1
    SWIFT = 2
    LD = 3
