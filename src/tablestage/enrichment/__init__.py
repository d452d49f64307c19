"""Enrichment of staged files: filename-based metadata guess and schema detection."""

from tablestage.enrichment.enricher import MetadataEnricher
from tablestage.enrichment.schema import SchemaResolver

__all__ = [
    "MetadataEnricher",
    "SchemaResolver",
]
