#
#  otoolkit | otoolkit
#  exceptions.py
#
#  Custom Exceptions for internal (and occasionally external) usage
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

class MachOException(Exception):
    """
    Base for every error raised while decoding a file
    """


class BadMagicException(MachOException):
    """
    The first 4 bytes (or the bytes at a slice's base) are not one of the six known magics
    """

    def __init__(self, value):
        super().__init__(f'Bad magic: {hex(value)}')
        self.value = value


class BadBufferLengthException(MachOException):
    """
    A declared size runs past the bytes actually available
    """

    def __init__(self, offset, expected, actual):
        super().__init__(f'Wanted {expected} bytes at {hex(offset)}, only {actual} available')
        self.offset = offset
        self.expected = expected
        self.actual = actual


class MalformedMachOException(MachOException):
    """
    """
