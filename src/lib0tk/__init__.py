from lib0tk.log import log, LogLevel
from lib0tk.structs import Struct
