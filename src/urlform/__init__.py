from urlform.config import ParseConfig
from urlform.exceptions import (
    Error,
    StructuralError,
    TooManyPairsError,
    ValueConversionError,
)
from urlform.form import (
    Deserializer,
    from_bytes,
    from_reader,
    from_str,
)
from urlform.parse import Parse, parse
