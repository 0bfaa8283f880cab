#
#  otoolkit | otoolkit_macho
#  structs.py
#
#  Fixed-layout records from <mach-o/fat.h> and <mach-o/loader.h>.
#  the __init__ defs here are unnecessary and only exist so IDEs can autocomplete the struct attributes
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

from lib0tk.structs import *


class fat_header(Struct):
    """
    First 8 Bytes of a FAT MachO File. Always big endian.

    Attributes:
        self.magic: FAT MachO Magic

        self.nfat_arch: Number of Fat Arch entries after these bytes
    """
    FIELDS = {
        'magic': uint32_t,
        'nfat_arch': uint32_t
    }

    def __init__(self, byte_order="big", ptr_size=8):
        super().__init__(byte_order=byte_order, ptr_size=ptr_size)
        self.magic = 0
        self.nfat_arch = 0


class fat_arch(Struct):
    """
    One slice descriptor in a FAT MachO. Always big endian.
    """
    FIELDS = {
        'cputype': uint32_t,
        'cpusubtype': uint32_t,
        'offset': uint32_t,
        'size': uint32_t,
        'align': uint32_t
    }

    def __init__(self, byte_order="big", ptr_size=8):
        super().__init__(byte_order=byte_order, ptr_size=ptr_size)
        self.cputype = 0
        self.cpusubtype = 0
        self.offset = 0
        self.size = 0
        self.align = 0


class mach_header(Struct):
    FIELDS = {
        'magic': uint32_t,
        'cputype': uint32_t,
        'cpusubtype': uint32_t,
        'filetype': uint32_t,
        'ncmds': uint32_t,
        'sizeofcmds': uint32_t,
        'flags': uint32_t
    }

    def __init__(self, byte_order="little", ptr_size=8):
        super().__init__(byte_order=byte_order, ptr_size=ptr_size)
        self.magic = 0
        self.cputype = 0
        self.cpusubtype = 0
        self.filetype = 0
        self.ncmds = 0
        self.sizeofcmds = 0
        self.flags = 0


class mach_header_64(Struct):
    FIELDS = {
        'magic': uint32_t,
        'cputype': uint32_t,
        'cpusubtype': uint32_t,
        'filetype': uint32_t,
        'ncmds': uint32_t,
        'sizeofcmds': uint32_t,
        'flags': uint32_t,
        'reserved': uint32_t
    }

    def __init__(self, byte_order="little", ptr_size=8):
        super().__init__(byte_order=byte_order, ptr_size=ptr_size)
        self.magic = 0
        self.cputype = 0
        self.cpusubtype = 0
        self.filetype = 0
        self.ncmds = 0
        self.sizeofcmds = 0
        self.flags = 0
        self.reserved = 0


class load_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t
    }

    def __init__(self, byte_order="little", ptr_size=8):
        super().__init__(byte_order=byte_order, ptr_size=ptr_size)
        self.cmd = 0
        self.cmdsize = 0


class segment_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'segname': char_t[16],
        'vmaddr': uint32_t,
        'vmsize': uint32_t,
        'fileoff': uint32_t,
        'filesize': uint32_t,
        'maxprot': uint32_t,
        'initprot': uint32_t,
        'nsects': uint32_t,
        'flags': uint32_t
    }


class segment_command_64(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'segname': char_t[16],
        'vmaddr': uint64_t,
        'vmsize': uint64_t,
        'fileoff': uint64_t,
        'filesize': uint64_t,
        'maxprot': uint32_t,
        'initprot': uint32_t,
        'nsects': uint32_t,
        'flags': uint32_t
    }


class section(Struct):
    FIELDS = {
        'sectname': char_t[16],
        'segname': char_t[16],
        'addr': uint32_t,
        'size': uint32_t,
        'offset': uint32_t,
        'align': uint32_t,
        'reloff': uint32_t,
        'nreloc': uint32_t,
        'flags': uint32_t,
        'reserved1': uint32_t,
        'reserved2': uint32_t
    }


class section_64(Struct):
    FIELDS = {
        'sectname': char_t[16],
        'segname': char_t[16],
        'addr': uint64_t,
        'size': uint64_t,
        'offset': uint32_t,
        'align': uint32_t,
        'reloff': uint32_t,
        'nreloc': uint32_t,
        'flags': uint32_t,
        'reserved1': uint32_t,
        'reserved2': uint32_t,
        'reserved3': uint32_t
    }


class symtab_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'symoff': uint32_t,
        'nsyms': uint32_t,
        'stroff': uint32_t,
        'strsize': uint32_t
    }

    def __init__(self, byte_order="little", ptr_size=8):
        super().__init__(byte_order=byte_order, ptr_size=ptr_size)
        self.cmd = 0
        self.cmdsize = 0
        self.symoff = 0
        self.nsyms = 0
        self.stroff = 0
        self.strsize = 0


class dysymtab_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'ilocalsym': uint32_t,
        'nlocalsym': uint32_t,
        'iextdefsym': uint32_t,
        'nextdefsym': uint32_t,
        'iundefsym': uint32_t,
        'nundefsym': uint32_t,
        'tocoff': uint32_t,
        'ntoc': uint32_t,
        'modtaboff': uint32_t,
        'nmodtab': uint32_t,
        'extrefsymoff': uint32_t,
        'nextrefsyms': uint32_t,
        'indirectsymoff': uint32_t,
        'nindirectsyms': uint32_t,
        'extreloff': uint32_t,
        'nextrel': uint32_t,
        'locreloff': uint32_t,
        'nlocrel': uint32_t
    }


class dylib_command(Struct):
    """
    `name` is the offset of the install name, relative to the start of the command
    """
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'name': uint32_t,
        'timestamp': uint32_t,
        'current_version': uint32_t,
        'compatibility_version': uint32_t
    }

    def __init__(self, byte_order="little", ptr_size=8):
        super().__init__(byte_order=byte_order, ptr_size=ptr_size)
        self.cmd = 0
        self.cmdsize = 0
        self.name = 0
        self.timestamp = 0
        self.current_version = 0
        self.compatibility_version = 0


class dylinker_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'name': uint32_t
    }


class sub_framework_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'umbrella': uint32_t
    }


class sub_client_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'client': uint32_t
    }


class sub_umbrella_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'sub_umbrella': uint32_t
    }


class sub_library_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'sub_library': uint32_t
    }


class prebound_dylib_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'name': uint32_t,
        'nmodules': uint32_t,
        'linked_modules': uint32_t
    }


class thread_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t
    }


class thread_state_header(Struct):
    """
    Precedes each flavor of machine state inside LC_THREAD / LC_UNIXTHREAD; `count` is in 32 bit words.
    """
    FIELDS = {
        'flavor': uint32_t,
        'count': uint32_t
    }


class routines_command(Struct):
    """
    routines_command / routines_command_64. The address and reserved words are pointer width.
    """
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'init_address': uintptr_t,
        'init_module': uintptr_t,
        'reserved1': uintptr_t,
        'reserved2': uintptr_t,
        'reserved3': uintptr_t,
        'reserved4': uintptr_t,
        'reserved5': uintptr_t,
        'reserved6': uintptr_t
    }


class twolevel_hints_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'offset': uint32_t,
        'nhints': uint32_t
    }


class prebind_cksum_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'cksum': uint32_t
    }


class uuid_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'uuid': bytes_t[16]
    }


class rpath_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'path': uint32_t
    }

    def __init__(self, byte_order="little", ptr_size=8):
        super().__init__(byte_order=byte_order, ptr_size=ptr_size)
        self.cmd = 0
        self.cmdsize = 0
        self.path = 0


class linkedit_data_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'dataoff': uint32_t,
        'datasize': uint32_t
    }


class encryption_info_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'cryptoff': uint32_t,
        'cryptsize': uint32_t,
        'cryptid': uint32_t
    }


class encryption_info_command_64(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'cryptoff': uint32_t,
        'cryptsize': uint32_t,
        'cryptid': uint32_t,
        'pad': uint32_t
    }


class version_min_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'version': uint32_t,
        'sdk': uint32_t
    }


class build_version_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'platform': uint32_t,
        'minos': uint32_t,
        'sdk': uint32_t,
        'ntools': uint32_t
    }

    def __init__(self, byte_order="little", ptr_size=8):
        super().__init__(byte_order=byte_order, ptr_size=ptr_size)
        self.cmd = 0
        self.cmdsize = 0
        self.platform = 0
        self.minos = 0
        self.sdk = 0
        self.ntools = 0


class build_tool_version(Struct):
    FIELDS = {
        'tool': uint32_t,
        'version': uint32_t
    }


class dyld_info_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'rebase_off': uint32_t,
        'rebase_size': uint32_t,
        'bind_off': uint32_t,
        'bind_size': uint32_t,
        'weak_bind_off': uint32_t,
        'weak_bind_size': uint32_t,
        'lazy_bind_off': uint32_t,
        'lazy_bind_size': uint32_t,
        'export_off': uint32_t,
        'export_size': uint32_t
    }


class linker_option_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'count': uint32_t
    }


class symseg_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'offset': uint32_t,
        'size': uint32_t
    }


class fvmfile_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'name': uint32_t,
        'header_addr': uint32_t
    }


class fvmlib_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'name': uint32_t,
        'minor_version': uint32_t,
        'header_addr': uint32_t
    }


class ident_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t
    }


class entry_point_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'entryoff': uint64_t,
        'stacksize': uint64_t
    }


class source_version_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'version': uint64_t
    }


class note_command(Struct):
    FIELDS = {
        'cmd': uint32_t,
        'cmdsize': uint32_t,
        'data_owner': char_t[16],
        'offset': uint64_t,
        'size': uint64_t
    }


class nlist(Struct):
    """
    nlist / nlist_64. Only `n_value` changes width.
    """
    FIELDS = {
        'n_strx': uint32_t,
        'n_type': uint8_t,
        'n_sect': uint8_t,
        'n_desc': uint16_t,
        'n_value': uintptr_t
    }

    def __init__(self, byte_order="little", ptr_size=8):
        super().__init__(byte_order=byte_order, ptr_size=ptr_size)
        self.n_strx = 0
        self.n_type = 0
        self.n_sect = 0
        self.n_desc = 0
        self.n_value = 0


class relocation_info(Struct):
    FIELDS = {
        'r_address': int32_t,
        'r_bitfield': uint32_t
    }
