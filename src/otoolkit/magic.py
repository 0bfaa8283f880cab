#
#  otoolkit | otoolkit
#  magic.py
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

from enum import Enum

from otoolkit.exceptions import BadMagicException
from otoolkit.primitives import Endian
from otoolkit_macho import FAT_MAGIC, FAT_CIGAM, MH_MAGIC, MH_CIGAM, MH_MAGIC_64, MH_CIGAM_64


class Magic(Enum):
    """
    The first 4 bytes of a file (or slice), read big endian.

    "Reversed" (CIGAM) thin magics mean the image is little endian; everything else is decoded big endian.
    """
    FAT = FAT_MAGIC
    FAT_REVERSE = FAT_CIGAM
    BIT32 = MH_MAGIC
    BIT32_REVERSE = MH_CIGAM
    BIT64 = MH_MAGIC_64
    BIT64_REVERSE = MH_CIGAM_64

    @staticmethod
    def from_raw(value: int) -> 'Magic':
        try:
            return Magic(value)
        except ValueError:
            raise BadMagicException(value) from None

    @property
    def raw_value(self) -> int:
        return self.value

    @property
    def is_fat(self) -> bool:
        return self in (Magic.FAT, Magic.FAT_REVERSE)

    @property
    def is_reverse(self) -> bool:
        return self in (Magic.FAT_REVERSE, Magic.BIT32_REVERSE, Magic.BIT64_REVERSE)

    @property
    def is_64(self) -> bool:
        return self in (Magic.BIT64, Magic.BIT64_REVERSE)

    @property
    def byte_order(self) -> str:
        # fat headers are big endian whichever way the magic reads
        if self.is_reverse and not self.is_fat:
            return Endian.LITTLE.value
        return Endian.BIG.value

    def __str__(self):
        return f'{self.name} ({hex(self.value)})'


class ObjectKind(Enum):
    """ What a parse entry point produced """
    FAT = 'fat'
    MACHO = 'macho'
