"""
app/mappers package marker.
"""

from app.mappers.schema_synthesizer import SchemaSynthesizer

__all__ = [
    "SchemaSynthesizer",
]
