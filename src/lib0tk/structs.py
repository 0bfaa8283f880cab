#
#  otoolkit | lib0tk
#  structs.py
#
#  Custom Struct implementation reflecting behavior of named tuples while also handling behind-the-scenes
#    packing/unpacking
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

# Field sizes are encoded as ints; the high half carries the field type, the low half carries its byte size.
type_mask = 0xffff0000
size_mask = 0xffff

type_uint = 0
type_sint = 0x10000
type_str = 0x20000
type_bytes = 0x30000

uint8_t = 1
uint16_t = 2
uint32_t = 4
uint64_t = 8

int8_t = type_sint | 1
int16_t = type_sint | 2
int32_t = type_sint | 4
int64_t = type_sint | 8

# char_t[16] -> a 16 byte, zero padded string field. bytes_t[16] -> 16 raw bytes.
char_t = [type_str | i for i in range(65)]
bytes_t = [type_bytes | i for i in range(65)]


class uintptr_t:
    """ Pointer-width field. 8 bytes when the struct is loaded with ptr_size=8, 4 bytes otherwise. """
    pass


def _uint_to_int(uint, bits):
    """
    Assume an int was read from binary as an unsigned int,

    decode it as a two's compliment signed integer

    :param uint:
    :param bits:
    :return:
    """
    if (uint & (1 << (bits - 1))) != 0:
        uint = uint - (1 << bits)
    return uint


def _field_size(value, ptr_size):
    if isinstance(value, int):
        return value & size_mask
    if value is uintptr_t:
        if ptr_size is None:
            raise AssertionError("Trying to get size on variable (ptr) sized type without a ptr_size")
        return ptr_size
    if issubclass(value, Struct):
        return value.size(ptr_size=ptr_size)
    raise AssertionError(f'Unknown field type {value}')


# noinspection PyUnresolvedReferences
class Struct:
    """
    Custom namedtuple-esque Struct representation. Can be unpacked from bytes or manually created with existing
        field values

    Subclassed with a `FIELDS` dict of field name -> field type.

    Fields are exposed as read-write attributes; `.raw` rebuilds the byte representation from the current values.
    """

    FIELDS = {}

    @classmethod
    def size(cls, ptr_size=None):
        variable = any(value is uintptr_t for value in cls.FIELDS.values())
        if not variable and '_SIZE' in cls.__dict__:
            return cls.__dict__['_SIZE']
        size = 0
        for value in cls.FIELDS.values():
            if isinstance(value, type) and issubclass(value, Struct) and value is cls:
                raise AssertionError(f"Recursive type definition on {cls.__name__}")
            size += _field_size(value, ptr_size)
        if not variable:
            setattr(cls, '_SIZE', size)
        return size

    # noinspection PyProtectedMember
    @staticmethod
    def create_with_bytes(struct_class, raw, byte_order="little", ptr_size=8):
        """
        Unpack a struct from raw bytes

        :param struct_class: Struct subclass
        :param raw: Bytes
        :param byte_order: Little/Big Endian Struct Unpacking
        :param ptr_size: Width of uintptr_t fields
        :return: struct_class Instance
        """
        instance: Struct = struct_class(byte_order=byte_order, ptr_size=ptr_size)
        current_off = 0
        raw = bytes(raw)

        expected = struct_class.size(ptr_size=ptr_size)
        if len(raw) < expected:
            raise ValueError(f'{struct_class.__name__} needs {expected} bytes, got {len(raw)}')

        for field in instance._fields:
            value = instance._field_sizes[field]
            instance._field_offsets[field] = current_off

            if isinstance(value, int):
                field_type = type_mask & value
                size = size_mask & value
                data = raw[current_off:current_off + size]

                if field_type == type_str:
                    field_value = data.split(b'\x00', 1)[0].decode('utf-8', errors='replace')
                elif field_type == type_bytes:
                    field_value = bytes(data)
                elif field_type == type_sint:
                    field_value = _uint_to_int(int.from_bytes(data, byte_order), size * 8)
                else:
                    field_value = int.from_bytes(data, byte_order)

            elif value is uintptr_t:
                size = ptr_size
                field_value = int.from_bytes(raw[current_off:current_off + size], byte_order)

            elif issubclass(value, Struct):
                size = value.size(ptr_size=ptr_size)
                field_value = Struct.create_with_bytes(value, raw[current_off:current_off + size], byte_order,
                                                       ptr_size)

            else:
                raise AssertionError

            setattr(instance, field, field_value)
            current_off += size

        instance.initialized = True
        instance.post_init()

        return instance

    @staticmethod
    def create_with_values(struct_class, values, byte_order="little", ptr_size=8):
        """
        Pack/Create a struct given field values

        :param struct_class: Struct subclass
        :param values: List of values
        :param byte_order:
        :param ptr_size:
        :return: struct_class Instance
        """

        instance: Struct = struct_class(byte_order=byte_order, ptr_size=ptr_size)

        # noinspection PyProtectedMember
        for i, field in enumerate(instance._fields):
            setattr(instance, field, values[i])

        instance.initialized = True
        instance.post_init()
        return instance

    @property
    def type_name(self):
        return self.__class__.__name__

    @property
    def raw(self):
        raw = bytearray()
        for field in self._fields:
            value = self._field_sizes[field]
            field_dat = getattr(self, field)

            if isinstance(field_dat, Struct):
                data = field_dat.raw
            elif isinstance(field_dat, str):
                size = value & size_mask
                data = field_dat.encode('utf-8')[:size]
                data += b'\x00' * (size - len(data))
            elif isinstance(field_dat, (bytes, bytearray)):
                size = value & size_mask
                data = bytes(field_dat[:size]).ljust(size, b'\x00')
            elif isinstance(field_dat, int):
                size = _field_size(value, self.ptr_size)
                signed = isinstance(value, int) and (value & type_mask) == type_sint
                data = field_dat.to_bytes(size, byteorder=self.byte_order, signed=signed)
            else:
                raise AssertionError(f'Cannot pack {field}={field_dat!r}')

            raw += data

        return bytes(raw)

    def __eq__(self, other):
        try:
            for field in self._fields:
                if getattr(self, field) != getattr(other, field):
                    return False
        except AttributeError:
            return False
        return True

    def __ne__(self, other):
        return not self.__eq__(other)

    def __repr__(self):
        return str(self)

    def __str__(self):
        text = f'{self.__class__.__name__}('
        for field in self._fields:
            attr = getattr(self, field, None)
            if isinstance(attr, int):
                field_item = hex(attr)
            else:
                field_item = attr
            text += f'{field}={field_item}, '
        return text[:-2] + ')'

    def serialize(self):
        struct_dict = {'type': self.__class__.__name__}

        for field in self._fields:
            field_item = getattr(self, field)
            if isinstance(field_item, (bytes, bytearray)):
                field_item = field_item.hex()
            elif isinstance(field_item, Struct):
                field_item = field_item.serialize()
            struct_dict[field] = field_item

        return struct_dict

    def __init__(self, byte_order="little", ptr_size=8):
        if not self.__class__.FIELDS:
            raise AssertionError("Do not use the bare Struct class; it must be implemented in an actual type")

        self.initialized = False

        self._fields = list(self.__class__.FIELDS.keys())
        self._field_sizes = dict(self.__class__.FIELDS)
        self._field_offsets = {}

        self.byte_order = byte_order
        self.ptr_size = ptr_size

        self.off = 0

    def post_init(self):
        """stub for subclasses. gets called after all fields are loaded"""
        pass
