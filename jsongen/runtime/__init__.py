"""Runtime support imported by generated jsongen codecs."""

from .annotations import CreatorMode as CreatorMode
from .annotations import ExternalCodec as ExternalCodec
from .annotations import JsonAlias as JsonAlias
from .annotations import JsonCreator as JsonCreator
from .annotations import JsonIgnore as JsonIgnore
from .annotations import JsonIgnoreProperties as JsonIgnoreProperties
from .annotations import JsonProperty as JsonProperty
from .annotations import JsonUnwrapped as JsonUnwrapped
from .annotations import NonNull as NonNull
from .annotations import Nullable as Nullable
from .annotations import RecursiveSerialization as RecursiveSerialization
from .annotations import SerializableBean as SerializableBean
from .annotations import annotate as annotate
from .annotations import json_field as json_field
from .codecs import CodecError as CodecError
from .codecs import CodecRegistry as CodecRegistry
from .serialization import Codec as Codec
from .serialization import JsonParseError as JsonParseError
from .tokens import JsonToken as JsonToken
from .tokens import Location as Location
from .tokens import TokenReader as TokenReader
from .tokens import TokenStreamError as TokenStreamError
from .tokens import TokenWriter as TokenWriter
