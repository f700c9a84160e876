"""
Ghostchain — Lazy Method Chains Over a Cached Query Layer

Provides:
- Chain builder (build_chain / make_ghost, Chain, ChainItem)
- Evaluator (evaluate, EvaluateOptions, Evaluation)
- Session context (GhostSession) owning cache, target hashes, transform memo
- Invalidation (invalidate_by_chain, invalidate_by_key)
- Producer context (current_query)
- Configuration (GhostConfig, load_config)
"""

from cache.hashing import structural_hash

from .chain import TRANSFORM_PROP, Chain, ChainItem, ItemKind, build_chain, make_ghost
from .config import GhostConfig, load_config
from .context import QueryContext, current_query
from .errors import ChainContractError, ConfigError, GhostError
from .evaluator import Evaluation, EvaluateOptions, TransformMemo, evaluate
from .invalidate import invalidate_by_chain, invalidate_by_key
from .session import GhostSession

__all__ = [
    'TRANSFORM_PROP', 'Chain', 'ChainItem', 'ItemKind', 'build_chain', 'make_ghost',
    'GhostConfig', 'load_config',
    'QueryContext', 'current_query',
    'ChainContractError', 'ConfigError', 'GhostError',
    'Evaluation', 'EvaluateOptions', 'TransformMemo', 'evaluate',
    'invalidate_by_chain', 'invalidate_by_key',
    'GhostSession',
    'structural_hash',
]
