"""Per-issuer statement adapters (2 issuers x 2 serializations)."""

from .dkb_csv import parse_dkb_csv
from .dkb_text import parse_dkb_text
from .ing_csv import parse_ing_csv
from .ing_text import parse_ing_text

__all__ = ["parse_dkb_csv", "parse_dkb_text", "parse_ing_csv", "parse_ing_text"]
