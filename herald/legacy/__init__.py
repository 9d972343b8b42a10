from herald.legacy.mappings import DEFAULT_LEGACY_MAPPINGS, LegacyMappingTable, LegacyRule
from herald.legacy.shapes import LegacyContext, LegacyEvent
from herald.legacy.translator import LegacyEventTranslator, LegacyHints

__all__ = [
    "DEFAULT_LEGACY_MAPPINGS",
    "LegacyContext",
    "LegacyEvent",
    "LegacyEventTranslator",
    "LegacyHints",
    "LegacyMappingTable",
    "LegacyRule",
]
