#
#  otoolkit | otoolkit
#  loader.py
#
#  Entry points: look at the first 4 bytes of a file and hand back a FatObject or a MachObject.
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

from typing import Union, BinaryIO

from lib0tk.log import log
from otoolkit.exceptions import MalformedMachOException
from otoolkit.fat import FatObject
from otoolkit.macho import MachObject
from otoolkit.magic import Magic
from otoolkit.reader import SharedReader

ObjectType = Union[FatObject, MachObject]


def parse(fp: Union[BinaryIO, SharedReader]) -> ObjectType:
    """
    Decode the file behind `fp`.

    Errors here (unreadable file, bad magic, broken header) propagate to the caller.

    :param fp: Seekable binary file object, or an existing SharedReader
    :return: FatObject for universal binaries, MachObject (at offset 0) for thin ones. Check `.kind`.
    """
    reader = fp if isinstance(fp, SharedReader) else SharedReader(fp)

    magic = Magic.from_raw(reader.read_int(0, 4, 'big'))
    log.debug(f'{reader.name or "<memory>"}: {magic}')

    if magic.is_fat:
        return FatObject(reader)
    return MachObject(reader, 0)


def parse_file(path) -> ObjectType:
    """
    Open `path` and decode it. The file stays open for as long as the returned objects need to read from it.
    """
    try:
        reader = SharedReader.open(path)
    except OSError as ex:
        raise MalformedMachOException(f'Could not open {path}') from ex
    try:
        return parse(reader)
    except Exception:
        reader.close()
        raise
