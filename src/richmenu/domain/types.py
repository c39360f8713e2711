# src/richmenu/domain/types.py
"""Type aliases and domain-specific type definitions for the rich menu domain."""

from typing import NewType

# LINE identifiers
AliasId = NewType('AliasId', str)        # richMenuAliasId, max 32 chars
