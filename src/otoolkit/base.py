#
#  otoolkit | otoolkit
#  base.py
#
#  Shared plumbing for decoded load command payloads.
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

from enum import Enum

from otoolkit.exceptions import MalformedMachOException
from otoolkit.primitives import X64Context, LcStr


def serialize_value(value):
    """
    Turn a decoded field into something json.dumps() can take.

    Wrappers with a serialize() (Hex, Version32, LcStr, ...) use it, enums become their name.
    """
    if hasattr(value, 'serialize'):
        return value.serialize()
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    if isinstance(value, (bytes, bytearray)):
        return value.hex()
    return value


def enum_or_int(enum_type):
    def convert(value):
        try:
            return enum_type(value)
        except ValueError:
            return value
    return convert


class LcVariant:
    """
    One decoded load command payload.

    Subclasses describe themselves declaratively:

        STRUCT / STRUCT_64: on-disk layout; STRUCT_64 is used when the command is one of WIDE_COMMANDS
        WIDE_COMMANDS: command ids using the 64 bit form of the payload
        FIELD_TYPES: field -> wrapper applied to the raw value (Version32, Hex, ...)
        LC_STR_FIELDS: fields holding a command relative string offset; stored as a deferred LcStr

    Fields past cmd/cmdsize become attributes, in layout order. `post_init()` can add anything else.
    """

    kind = 'Other'
    STRUCT = None
    STRUCT_64 = None
    WIDE_COMMANDS = ()
    FIELD_TYPES = {}
    LC_STR_FIELDS = ()

    def __init__(self, image, cmd):
        self.reader = image.reader
        self.file_offset = image.file_offset
        self.command_offset = cmd.off
        self.cmdsize = cmd.cmdsize

        if self.WIDE_COMMANDS:
            self.context = X64Context(image.context.byte_order, cmd.cmd in self.WIDE_COMMANDS)
        else:
            self.context = image.context

        self.fields = []

        struct_type = self.STRUCT_64 if (self.context.is_64 and self.STRUCT_64) else self.STRUCT
        if struct_type is not None:
            struct = self.load_struct(struct_type)
            for field in struct._fields:
                if field in ('cmd', 'cmdsize'):
                    continue
                value = getattr(struct, field)
                if field in self.LC_STR_FIELDS:
                    value = LcStr(self.reader, self.command_offset + value)
                elif field in self.FIELD_TYPES:
                    value = self.FIELD_TYPES[field](value)
                setattr(self, field, value)
                self.fields.append(field)
            self.payload_size = struct_type.size(ptr_size=self.context.ptr_size)
        else:
            self.payload_size = 8

        self.post_init()

    @classmethod
    def from_image(cls, image, cmd):
        """
        :param image: MachObject (anything with .reader, .context, .file_offset)
        :param cmd: load_command struct of this command, with .off set
        """
        return cls(image, cmd)

    def load_struct(self, struct_type):
        size = struct_type.size(ptr_size=self.context.ptr_size)
        if size > self.cmdsize:
            raise MalformedMachOException(f'{struct_type.__name__} ({size} bytes) does not fit in cmdsize '
                                          f'{self.cmdsize} at {hex(self.command_offset)}')
        return self.reader.read_struct(self.command_offset, struct_type, self.context.byte_order,
                                       self.context.ptr_size)

    @property
    def end(self):
        return self.command_offset + self.cmdsize

    def post_init(self):
        pass

    def serialize(self):
        out = {'kind': self.kind}
        for field in self.fields:
            out[field] = serialize_value(getattr(self, field))
        return out

    def __str__(self):
        return f'{self.kind}(' + ', '.join(f'{field}={getattr(self, field)}' for field in self.fields) + ')'
