from urlform.de.deserializer import (
    DESERIALIZE_KINDS,
    Deserializer,
    forward_to_deserialize_any,
)
from urlform.de.visitor import (
    END,
    MapAccess,
    SeqAccess,
    Unexpected,
    Visitor,
)
from urlform.de.types import (
    U8,
    U16,
    U32,
    U64,
    I8,
    I16,
    I32,
    I64,
    F32,
    F64,
    Char,
    IgnoredAny,
)
from urlform.de.impls import (
    MapAccessDeserializer,
    deserialize,
)
from urlform.de.value import (
    MapDeserializer,
    PairDeserializer,
    StrDeserializer,
    into_deserializer,
)
