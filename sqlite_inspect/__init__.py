from sqlite_inspect.btree import BTreeWalker
from sqlite_inspect.exceptions import (
    DatabaseIOError,
    FormatError,
    InspectError,
    UnsupportedFeatureError,
)
from sqlite_inspect.header import FileHeader, read_header
from sqlite_inspect.pager import Pager
from sqlite_inspect.schema import SchemaCatalog

__version__ = "0.1.0"
