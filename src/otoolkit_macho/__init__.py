#
#  otoolkit | otoolkit_macho
#  __init__.py
#
#  Mach-O constants and on-disk record layouts, with no dependency on the decoder.
#
#  This file is part of otoolkit. otoolkit is free software that
#  is made available under the MIT license. Consult the
#  file "LICENSE" that is distributed together with this file
#  for the exact licensing terms.
#

from otoolkit_macho.constants import *
from otoolkit_macho.structs import *
