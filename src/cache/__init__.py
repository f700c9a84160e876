"""
Ghostchain Cache Layer
Async single-flight query cache, hierarchical keys, structural hashing,
target change detection
"""

from .cache import CacheEntry, QueryCache
from .hashing import stable_serialize, structural_hash
from .key_generator import QueryKey, QueryKeyGenerator
from .target_tracker import TargetHashTable

__all__ = [
    'CacheEntry', 'QueryCache',
    'stable_serialize', 'structural_hash',
    'QueryKey', 'QueryKeyGenerator',
    'TargetHashTable',
]
