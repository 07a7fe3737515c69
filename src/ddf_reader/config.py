"""
DDF Reader - Configuration
==========================

Reader configuration: text decoding and the sanity limits applied to
data record leaders. Configuration can come from:
- Default values (defined here)
- Environment variables (ReaderConfig.from_env)
- Explicit construction by the caller

The record limits mirror the checks GDAL and OpenMap apply to data
record leaders: a record longer than 100,000,000 bytes, or a field area
starting beyond 100,000 bytes, is treated as corrupt rather than read.
"""

from dataclasses import dataclass
import codecs
import os


# Values accepted as "true" for boolean environment variables
_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass
class ReaderConfig:
    """
    Configuration for reading ISO 8211 files.

    Attributes:
        encoding: Codec for character subfields, names and format strings
            (default: "latin-1", which maps every byte to a character)
        encoding_errors: Codec error policy (default: "replace")
        max_record_length: Largest acceptable data record length
        max_field_area_start: Largest acceptable data record field area start
        eager_subfields: Decode Subfield objects while reading each record.
            When False, fields keep only their bytes and callers use the
            get_*_subfield accessors (default: True)
    """

    # ═══════════════════════════════════════════════════════════════════════════
    # TEXT DECODING
    # ═══════════════════════════════════════════════════════════════════════════

    encoding: str = "latin-1"
    encoding_errors: str = "replace"

    # ═══════════════════════════════════════════════════════════════════════════
    # DATA RECORD LIMITS
    # ═══════════════════════════════════════════════════════════════════════════

    max_record_length: int = 100_000_000
    max_field_area_start: int = 100_000

    # ═══════════════════════════════════════════════════════════════════════════
    # DECODING BEHAVIOUR
    # ═══════════════════════════════════════════════════════════════════════════

    eager_subfields: bool = True

    # ═══════════════════════════════════════════════════════════════════════════
    # FACTORY METHODS
    # ═══════════════════════════════════════════════════════════════════════════

    @classmethod
    def from_env(cls) -> "ReaderConfig":
        """
        Create ReaderConfig from environment variables.

        Environment variables (all optional):
            DDF_ENCODING: Text codec name (e.g., "utf-8")
            DDF_ENCODING_ERRORS: Codec error policy (e.g., "strict")
            DDF_MAX_RECORD_LENGTH: Record length ceiling (integer)
            DDF_MAX_FIELD_AREA_START: Field area start ceiling (integer)
            DDF_EAGER_SUBFIELDS: "1"/"0", "true"/"false", ...

        Invalid values are ignored and the default kept.

        Returns:
            ReaderConfig with values from environment variables
        """
        config = cls()

        if encoding := os.environ.get("DDF_ENCODING"):
            try:
                codecs.lookup(encoding)
                config.encoding = encoding
            except LookupError:
                pass  # Unknown codec

        if errors := os.environ.get("DDF_ENCODING_ERRORS"):
            config.encoding_errors = errors

        if max_length := os.environ.get("DDF_MAX_RECORD_LENGTH"):
            try:
                config.max_record_length = int(max_length)
            except ValueError:
                pass

        if max_start := os.environ.get("DDF_MAX_FIELD_AREA_START"):
            try:
                config.max_field_area_start = int(max_start)
            except ValueError:
                pass

        if eager := os.environ.get("DDF_EAGER_SUBFIELDS"):
            if eager.lower() in _TRUE_VALUES:
                config.eager_subfields = True
            elif eager.lower() in _FALSE_VALUES:
                config.eager_subfields = False

        return config

    # ═══════════════════════════════════════════════════════════════════════════
    # HELPER METHODS
    # ═══════════════════════════════════════════════════════════════════════════

    def decode(self, data: bytes) -> str:
        """Decode raw subfield bytes using the configured codec."""
        return data.decode(self.encoding, errors=self.encoding_errors)

    def encode_byte(self, char: str) -> int:
        """Byte value of a single delimiter character (first byte if multi-byte)."""
        return char.encode(self.encoding, errors=self.encoding_errors)[0]
