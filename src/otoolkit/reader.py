#
#  otoolkit | otoolkit
#  reader.py
#
#  The single backing file every decoded value reads through.
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

import os
import threading
from io import BytesIO
from typing import BinaryIO, Union

from lib0tk.log import log
from lib0tk.structs import Struct
from otoolkit.exceptions import BadBufferLengthException
from otoolkit.util import opts

CSTR_CHUNK_SIZE = 0x100


class SharedReader:
    """
    Random access over one seekable binary file.

    Nothing is loaded up front; every read is a seek followed by a read, done under a lock so that lazy values and
        sequences sharing this reader can never interleave half finished seek/read pairs.
    """

    def __init__(self, fp: Union[BinaryIO, BytesIO]):
        self.fp = fp
        self._lock = threading.Lock()

        if hasattr(fp, 'name') and isinstance(fp.name, str):
            self.name = os.path.basename(fp.name)
        else:
            self.name = ''

        with self._lock:
            old_file_position = fp.tell()
            fp.seek(0, os.SEEK_END)
            self.size = fp.tell()
            fp.seek(old_file_position)

    @staticmethod
    def open(path):
        return SharedReader(open(path, 'rb'))

    def _read_locked(self, offset, count):
        self.fp.seek(offset)
        return self.fp.read(count)

    def read_bytes(self, offset: int, count: int) -> bytes:
        with self._lock:
            data = self._read_locked(offset, count)
        if len(data) < count:
            raise BadBufferLengthException(offset, count, len(data))
        return data

    def read_int(self, offset: int, size: int, byte_order="little") -> int:
        return int.from_bytes(self.read_bytes(offset, size), byte_order)

    def read_struct(self, offset, struct_type, byte_order="little", ptr_size=8):
        """
        Load a lib0tk Struct located at `offset`

        :param offset: Absolute file offset
        :param struct_type: Struct subclass
        :param byte_order: Byte order of every field
        :param ptr_size: Width of uintptr_t fields (4 or 8)
        :return: struct_type instance with .off set to `offset`
        """
        size = struct_type.size(ptr_size=ptr_size)
        data = self.read_bytes(offset, size)
        struct = Struct.create_with_bytes(struct_type, data, byte_order, ptr_size)
        struct.off = offset
        return struct

    def read_cstr(self, offset: int) -> str:
        """
        Read a zero terminated string, CSTR_CHUNK_SIZE bytes at a time.

        A string that runs into EOF without a terminator is returned as-is.
        """
        buf = bytearray()
        pos = offset
        while True:
            with self._lock:
                chunk = self._read_locked(pos, CSTR_CHUNK_SIZE)
            if not chunk:
                if pos == offset:
                    raise BadBufferLengthException(offset, 1, 0)
                log.debug_more(f'Unterminated string at {hex(offset)}')
                break
            end = chunk.find(b'\x00')
            if end != -1:
                buf += chunk[:end]
                break
            buf += chunk
            pos += len(chunk)
        return buf.decode('utf-8', errors='replace')

    def copy_to(self, offset, size, sink, chunk_size=None):
        """
        Stream `size` bytes starting at `offset` into `sink` (anything with a .write())

        :return: Number of bytes written
        """
        if chunk_size is None:
            chunk_size = opts.READ_CHUNK_SIZE
        written = 0
        while written < size:
            count = min(chunk_size, size - written)
            sink.write(self.read_bytes(offset + written, count))
            written += count
        return written

    def close(self):
        self.fp.close()
