"""Generator configuration."""

from dataclasses import dataclass, field

from dataclasses_json import DataClassJsonMixin


@dataclass
class GeneratorOptions(DataClassJsonMixin):
    """Options of one generation request.

    ``runtime_import`` is the module generated code imports the runtime
    from, ``external_types`` are qualified names of types whose codecs are
    registered by hand at runtime.
    """

    runtime_import: str = "jsongen.runtime"
    codec_suffix: str = "Codec"
    external_types: list[str] = field(default_factory=list)

    @classmethod
    def load(cls, path: str) -> "GeneratorOptions":
        with open(path, encoding="utf-8") as f:
            return cls.from_json(f.read())
